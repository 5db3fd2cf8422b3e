"""Conversation schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from wacrm.models.conversation import ConversationStatus
from wacrm.models.message import MessageDirection


class LastMessage(BaseModel):
    """Most recent message of a conversation, for inbox listings."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    direction: MessageDirection
    content: dict[str, Any]
    timestamp: datetime


class ConversationDetail(BaseModel):
    """Schema for conversation details."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    account_id: UUID
    whatsapp_number_id: UUID | None
    contact_number: str
    contact_name: str | None
    last_message_at: datetime
    session_start_at: datetime
    session_end_at: datetime | None
    session_expires_at: datetime
    status: ConversationStatus


class ConversationSummary(ConversationDetail):
    """Conversation with inbox extras."""

    last_message: LastMessage | None = None
    unread_count: int = 0


class ConversationList(BaseModel):
    """Schema for paginated conversation list."""

    items: list[ConversationSummary]
    total: int
    skip: int
    limit: int


class ConversationStatusUpdate(BaseModel):
    """Explicit status change requested by a user."""

    status: ConversationStatus


class ConversationStats(BaseModel):
    total: int = 0
    active: int = 0
    expired: int = 0
    opted_out: int = 0
