"""Idempotent message persistence keyed by provider message id."""

import logging
import secrets
import string
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError

from wacrm.db.repositories import MessageRepository
from wacrm.models import Message
from wacrm.models.message import MessageDirection, MessageStatus

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_local_message_id(now: datetime) -> str:
    """Id for an outbound message before the provider assigns one."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"msg_{int(now.timestamp() * 1000)}_{suffix}"


class MessageStore:
    """Records inbound/outbound messages and applies status updates."""

    def __init__(self, messages: MessageRepository):
        self.messages = messages

    async def record_inbound(
        self,
        conversation_id: UUID,
        provider_message_id: str,
        content: BaseModel,
        timestamp: datetime,
        *,
        is_automated: bool = False,
    ) -> tuple[Message, bool]:
        """Insert an inbound message unless it was already recorded.

        Returns ``(message, created)``; a redelivered message returns the
        existing record with ``created`` False.
        """
        existing = await self.messages.get_by_provider_id(provider_message_id)
        if existing:
            logger.debug(f"Duplicate inbound message {provider_message_id} ignored")
            return existing, False

        try:
            message = await self.messages.create(
                conversation_id=conversation_id,
                provider_message_id=provider_message_id,
                direction=MessageDirection.INBOUND,
                status=MessageStatus.DELIVERED,
                content_type=content.type,
                content=content.model_dump(),
                timestamp=timestamp,
                is_automated=is_automated,
            )
        except IntegrityError:
            # Race condition: a concurrent delivery inserted it first
            await self.messages.session.rollback()
            existing = await self.messages.get_by_provider_id(provider_message_id)
            if existing:
                return existing, False
            raise

        return message, True

    async def record_outbound(
        self,
        conversation_id: UUID,
        content: BaseModel,
        now: datetime,
        *,
        is_automated: bool = False,
    ) -> Message:
        """Record an outbound message as sent, under a locally generated id."""
        return await self.messages.create(
            conversation_id=conversation_id,
            provider_message_id=generate_local_message_id(now),
            direction=MessageDirection.OUTBOUND,
            status=MessageStatus.SENT,
            content_type=content.type,
            content=content.model_dump(),
            timestamp=now,
            is_automated=is_automated,
        )

    async def apply_status_update(
        self,
        provider_message_id: str,
        status: str,
        timestamp: datetime,
        errors: list[dict[str, Any]] | None = None,
    ) -> Message | None:
        """Apply a delivery status without ever regressing it.

        Statuses progress sent -> delivered -> read; failed always applies.
        Returns the message, or None when no message has this id.
        """
        try:
            new_status = MessageStatus(status)
        except ValueError:
            logger.info(f"Ignoring unsupported status {status!r} for {provider_message_id}")
            return await self.messages.get_by_provider_id(provider_message_id)

        message = await self.messages.get_by_provider_id(provider_message_id)
        if message is None:
            logger.debug(f"Status {status} for unknown message {provider_message_id} dropped")
            return None

        extra_data = None
        if new_status == MessageStatus.FAILED and errors:
            extra_data = {**(message.extra_data or {}), "errors": errors}

        applied = await self.messages.update_status_by_provider_id(
            provider_message_id, new_status, timestamp, extra_data=extra_data
        )
        if not applied:
            logger.debug(
                f"Status {status} for {provider_message_id} not applied over {message.status.value}"
            )
        return await self.messages.get(message.id, fresh=True)

    async def bind_provider_id(self, message_id: UUID, provider_message_id: str) -> None:
        """Key an outbound message by the id the provider assigned on send."""
        await self.messages.replace_provider_id(message_id, provider_message_id)

    async def mark_conversation_read(
        self,
        conversation_id: UUID,
        now: datetime,
        message_ids: list[UUID] | None = None,
    ) -> int:
        """Mark inbound messages of a conversation as read."""
        return await self.messages.mark_inbound_read(conversation_id, message_ids, read_at=now)
