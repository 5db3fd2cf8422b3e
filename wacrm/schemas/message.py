"""Message schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from wacrm.models.message import MessageDirection, MessageStatus
from wacrm.schemas.content import OutboundContent


class MessageSend(BaseModel):
    """Schema for sending a message into a conversation."""

    content: OutboundContent
    is_automated: bool = Field(
        default=False, description="True when generated by a workflow rather than an agent"
    )


class MessageDetail(BaseModel):
    """Schema for message details."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    conversation_id: UUID
    provider_message_id: str
    direction: MessageDirection
    status: MessageStatus
    content_type: str
    content: dict[str, Any]
    timestamp: datetime
    is_automated: bool


class MessageList(BaseModel):
    """Schema for paginated message list."""

    items: list[MessageDetail]
    total: int
    skip: int
    limit: int


class MarkReadRequest(BaseModel):
    """Mark inbound messages as read; all unread ones when ids are omitted."""

    message_ids: list[UUID] | None = None


class MarkReadResponse(BaseModel):
    updated: int


class MessageSent(BaseModel):
    """Response for an accepted outbound message."""

    id: UUID
    message_id: str = Field(description="Id the message is tracked under for status updates")
    conversation_id: UUID
    status: MessageStatus
    timestamp: datetime
