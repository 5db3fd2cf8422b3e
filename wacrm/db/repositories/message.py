"""Message repository."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wacrm.db.repositories.base import BaseRepository
from wacrm.models import Message
from wacrm.models.message import MessageDirection, MessageStatus

# Statuses a message may currently hold for each regular status to apply.
# A status never moves backwards and never overrides failed.
_STATUS_PREDECESSORS = {
    MessageStatus.SENT: (),
    MessageStatus.DELIVERED: (MessageStatus.SENT,),
    MessageStatus.READ: (MessageStatus.SENT, MessageStatus.DELIVERED),
}


class MessageRepository(BaseRepository[Message]):
    """Repository for message operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Message)

    async def list(
        self,
        *,
        conversation_id: UUID,
        skip: int = 0,
        limit: int = 50,
        direction: MessageDirection | None = None,
    ) -> tuple[list[Message], int]:
        """List messages of a conversation, oldest first within the page.

        Pages are taken from the most recent end.
        """
        base_query = select(Message).where(Message.conversation_id == conversation_id)

        if direction:
            base_query = base_query.where(Message.direction == direction)

        # Count total
        count_stmt = select(func.count()).select_from(base_query.subquery())
        total_result = await self.session.execute(count_stmt)
        total = total_result.scalar() or 0

        stmt = base_query.order_by(Message.timestamp.desc()).offset(skip).limit(limit)
        result = await self.session.execute(stmt)
        items = list(result.scalars().all())
        items.reverse()

        return items, total

    async def get_by_provider_id(self, provider_message_id: str) -> Message | None:
        """Get message by provider message ID."""
        stmt = select(Message).where(Message.provider_message_id == provider_message_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def update_status_by_provider_id(
        self,
        provider_message_id: str,
        status: MessageStatus,
        status_updated_at: datetime,
        extra_data: dict | None = None,
    ) -> bool:
        """Apply a status if the transition is allowed.

        Returns True when a row was updated.
        """
        stmt = update(Message).where(Message.provider_message_id == provider_message_id)
        if status == MessageStatus.FAILED:
            stmt = stmt.where(Message.status != MessageStatus.FAILED)
        else:
            predecessors = _STATUS_PREDECESSORS[status]
            if not predecessors:
                return False
            stmt = stmt.where(Message.status.in_(predecessors))

        values = {"status": status, "status_updated_at": status_updated_at}
        if extra_data is not None:
            values["extra_data"] = extra_data

        result = await self.session.execute(
            stmt.values(**values).execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount > 0

    async def replace_provider_id(self, message_id: UUID, provider_message_id: str) -> None:
        """Swap a local message id for the one the provider assigned."""
        stmt = (
            update(Message)
            .where(Message.id == message_id)
            .values(provider_message_id=provider_message_id)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)
        await self.session.commit()

    async def mark_inbound_read(
        self,
        conversation_id: UUID,
        message_ids: list[UUID] | None = None,
        read_at: datetime | None = None,
    ) -> int:
        """Mark unread inbound messages of a conversation as read."""
        stmt = update(Message).where(
            Message.conversation_id == conversation_id,
            Message.direction == MessageDirection.INBOUND,
            Message.status.in_((MessageStatus.SENT, MessageStatus.DELIVERED)),
        )
        if message_ids:
            stmt = stmt.where(Message.id.in_(message_ids))

        stmt = stmt.values(status=MessageStatus.READ, status_updated_at=read_at)
        result = await self.session.execute(
            stmt.execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount

    async def delete_created_before(self, cutoff: datetime) -> int:
        """Delete messages created before ``cutoff``. Returns rows deleted."""
        stmt = (
            delete(Message)
            .where(Message.created_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount
