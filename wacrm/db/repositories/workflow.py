"""Workflow repository."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from wacrm.db.repositories.base import BaseRepository
from wacrm.models import Workflow


class WorkflowRepository(BaseRepository[Workflow]):
    """Repository for workflow definitions."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Workflow)

    async def list(
        self,
        *,
        account_id: UUID,
        skip: int = 0,
        limit: int = 50,
        is_active: bool | None = None,
    ) -> tuple[list[Workflow], int]:
        """List workflows for an account, most recently updated first."""
        base_query = select(Workflow).where(Workflow.account_id == account_id)

        if is_active is not None:
            base_query = base_query.where(Workflow.is_active == is_active)

        # Count total
        count_stmt = select(func.count()).select_from(base_query.subquery())
        total_result = await self.session.execute(count_stmt)
        total = total_result.scalar() or 0

        stmt = base_query.order_by(Workflow.updated_at.desc()).offset(skip).limit(limit)
        result = await self.session.execute(stmt)
        items = list(result.scalars().all())

        return items, total

