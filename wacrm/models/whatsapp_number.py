"""Business phone number registered with the WhatsApp Cloud API."""

from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wacrm.db.base import Base
from wacrm.models.base import TimestampMixin


class NumberStatus(str, Enum):
    """Approval status of a business number."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class WhatsAppNumber(Base, TimestampMixin):
    """A business-owned number; outbound sends require approval."""

    __tablename__ = "whatsapp_numbers"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    account_id: Mapped[UUID] = mapped_column(nullable=False)

    number: Mapped[str] = mapped_column(String(20), nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Cloud API phone number id, reported as metadata.phone_number_id in webhooks
    phone_number_id: Mapped[str | None] = mapped_column(String(64))

    status: Mapped[str] = mapped_column(
        String(20), default=NumberStatus.PENDING.value, nullable=False
    )

    # Relationships
    conversations: Mapped[list["Conversation"]] = relationship(  # noqa: F821
        back_populates="whatsapp_number"
    )

    __table_args__ = (
        Index("ix_whatsapp_numbers_number", "number", unique=True),
        Index("ix_whatsapp_numbers_phone_number_id", "phone_number_id", unique=True),
        Index("ix_whatsapp_numbers_account", "account_id"),
    )

    @property
    def can_send(self) -> bool:
        return self.status == NumberStatus.APPROVED.value
