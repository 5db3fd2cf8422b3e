"""Workflow definition model.

The node graph is stored and returned as-is; nothing in this service
executes it.
"""

from uuid import UUID, uuid4

from sqlalchemy import Boolean, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from wacrm.db.base import Base, JSONType
from wacrm.models.base import TimestampMixin


class Workflow(Base, TimestampMixin):
    """Automation workflow definition for an account."""

    __tablename__ = "workflows"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    account_id: Mapped[UUID] = mapped_column(nullable=False)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    triggers: Mapped[list] = mapped_column(JSONType, default=list)

    nodes: Mapped[dict] = mapped_column(JSONType, default=dict)
    schema_version: Mapped[int] = mapped_column(Integer, default=1)

    is_active: Mapped[bool] = mapped_column(Boolean, default=False)

    __table_args__ = (Index("ix_workflows_account_active", "account_id", "is_active"),)

    @property
    def node_count(self) -> int:
        return len(self.nodes) if self.nodes else 0
