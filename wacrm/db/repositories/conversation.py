"""Conversation repository.

Every write that depends on a previously read status or session start is a
single conditional UPDATE keyed on those observed values; callers check the
returned boolean and re-read when another writer got there first.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import case, func, literal, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wacrm.db.base import UTCDateTime
from wacrm.db.repositories.base import BaseRepository
from wacrm.models import Conversation, Message
from wacrm.models.conversation import OPEN_STATUSES, ConversationStatus
from wacrm.models.message import MessageDirection, MessageStatus


def _latest(column, value: datetime):
    """SQL expression for max(column, value)."""
    param = literal(value, type_=UTCDateTime())
    return case((column < param, param), else_=column)


class ConversationRepository(BaseRepository[Conversation]):
    """Repository for conversation operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Conversation)

    async def list(
        self,
        *,
        account_id: UUID,
        skip: int = 0,
        limit: int = 20,
        status: ConversationStatus | None = None,
        whatsapp_number_id: UUID | None = None,
    ) -> tuple[list[Conversation], int]:
        """List conversations for an account, most recently active first."""
        base_query = select(Conversation).where(Conversation.account_id == account_id)

        if status:
            base_query = base_query.where(Conversation.status == status.value)

        if whatsapp_number_id:
            base_query = base_query.where(
                Conversation.whatsapp_number_id == whatsapp_number_id
            )

        # Count total
        count_stmt = select(func.count()).select_from(base_query.subquery())
        total_result = await self.session.execute(count_stmt)
        total = total_result.scalar() or 0

        stmt = (
            base_query.order_by(Conversation.last_message_at.desc())
            .offset(skip)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        items = list(result.scalars().all())

        return items, total

    async def find_latest_open(
        self, account_id: UUID, contact_number: str
    ) -> Conversation | None:
        """Most recent active or expired conversation for a contact."""
        stmt = (
            select(Conversation)
            .where(
                Conversation.account_id == account_id,
                Conversation.contact_number == contact_number,
                Conversation.status.in_(OPEN_STATUSES),
            )
            .order_by(Conversation.last_message_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def open_session(
        self,
        *,
        account_id: UUID,
        contact_number: str,
        timestamp: datetime,
        contact_name: str | None = None,
        whatsapp_number_id: UUID | None = None,
    ) -> Conversation:
        """Create a conversation whose session starts at ``timestamp``."""
        return await self.create(
            account_id=account_id,
            contact_number=contact_number,
            contact_name=contact_name,
            whatsapp_number_id=whatsapp_number_id,
            last_message_at=timestamp,
            session_start_at=timestamp,
            status=ConversationStatus.ACTIVE.value,
        )

    async def touch_inbound(
        self,
        conversation: Conversation,
        *,
        timestamp: datetime,
        session_start_at: datetime,
        contact_name: str | None = None,
    ) -> bool:
        """Reactivate a conversation for an inbound message.

        Matches only while the conversation is still open and its session
        start is the one the caller observed.
        """
        values = {
            "status": ConversationStatus.ACTIVE.value,
            "last_message_at": _latest(Conversation.last_message_at, timestamp),
            "session_start_at": session_start_at,
        }
        if session_start_at != conversation.session_start_at:
            values["session_end_at"] = None
        if contact_name:
            values["contact_name"] = contact_name

        stmt = (
            update(Conversation)
            .where(
                Conversation.id == conversation.id,
                Conversation.status.in_(OPEN_STATUSES),
                Conversation.session_start_at == conversation.session_start_at,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount > 0

    async def touch_outbound(self, conversation_id: UUID, timestamp: datetime) -> None:
        """Advance last_message_at for an outbound message."""
        stmt = (
            update(Conversation)
            .where(Conversation.id == conversation_id)
            .values(last_message_at=_latest(Conversation.last_message_at, timestamp))
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)
        await self.session.commit()

    async def expire_if_active(
        self, conversation: Conversation, session_end_at: datetime
    ) -> bool:
        """Transition an active conversation to expired.

        Returns False when the conversation was no longer active or its
        session was renewed since it was read.
        """
        stmt = (
            update(Conversation)
            .where(
                Conversation.id == conversation.id,
                Conversation.status == ConversationStatus.ACTIVE.value,
                Conversation.session_start_at == conversation.session_start_at,
            )
            .values(status=ConversationStatus.EXPIRED.value, session_end_at=session_end_at)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount > 0

    async def list_elapsed(self, account_id: UUID, cutoff: datetime) -> list[Conversation]:
        """Active conversations whose session started before ``cutoff``."""
        stmt = select(Conversation).where(
            Conversation.account_id == account_id,
            Conversation.status == ConversationStatus.ACTIVE.value,
            Conversation.session_start_at < cutoff,
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def set_status(
        self,
        conversation_id: UUID,
        status: ConversationStatus,
        session_end_at: datetime | None,
    ) -> None:
        """Unconditionally set the status, e.g. when a contact opts out."""
        stmt = (
            update(Conversation)
            .where(Conversation.id == conversation_id)
            .values(status=status.value, session_end_at=session_end_at)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)
        await self.session.commit()

    async def get_last_message(self, conversation_id: UUID) -> Message | None:
        """Most recent message of a conversation."""
        stmt = (
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.timestamp.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def count_unread(self, conversation_id: UUID) -> int:
        """Inbound messages not yet marked read."""
        stmt = select(func.count()).where(
            Message.conversation_id == conversation_id,
            Message.direction == MessageDirection.INBOUND,
            Message.status != MessageStatus.READ,
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def get_stats(
        self,
        account_id: UUID,
        whatsapp_number_id: UUID | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ) -> dict[str, int]:
        """Count conversations per status for an account.

        ``date_from``/``date_to`` bound the creation time, both inclusive.
        """
        stmt = (
            select(Conversation.status, func.count())
            .where(Conversation.account_id == account_id)
            .group_by(Conversation.status)
        )
        if whatsapp_number_id:
            stmt = stmt.where(Conversation.whatsapp_number_id == whatsapp_number_id)
        if date_from:
            stmt = stmt.where(Conversation.created_at >= date_from)
        if date_to:
            stmt = stmt.where(Conversation.created_at <= date_to)

        result = await self.session.execute(stmt)
        counts = {status: count for status, count in result.all()}
        return {
            "total": sum(counts.values()),
            "active": counts.get(ConversationStatus.ACTIVE.value, 0),
            "expired": counts.get(ConversationStatus.EXPIRED.value, 0),
            "opted_out": counts.get(ConversationStatus.OPTED_OUT.value, 0),
        }
