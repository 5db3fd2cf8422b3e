"""Business number repository."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wacrm.db.repositories.base import BaseRepository
from wacrm.models import WhatsAppNumber


class WhatsAppNumberRepository(BaseRepository[WhatsAppNumber]):
    """Repository for business number operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, WhatsAppNumber)

    async def list_for_account(self, account_id: UUID) -> list[WhatsAppNumber]:
        """List an account's numbers, newest first."""
        stmt = (
            select(WhatsAppNumber)
            .where(WhatsAppNumber.account_id == account_id)
            .order_by(WhatsAppNumber.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_number(self, number: str) -> WhatsAppNumber | None:
        stmt = select(WhatsAppNumber).where(WhatsAppNumber.number == number)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_phone_number_id(self, phone_number_id: str) -> WhatsAppNumber | None:
        """Get the number a webhook's metadata.phone_number_id refers to."""
        stmt = select(WhatsAppNumber).where(
            WhatsAppNumber.phone_number_id == phone_number_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
