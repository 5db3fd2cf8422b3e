"""Conversation model for contact/business messaging sessions."""

from datetime import datetime, timedelta
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wacrm.db.base import Base
from wacrm.models.base import TimestampMixin

# Provider policy: free-form outbound messages are allowed for 24h
SESSION_WINDOW = timedelta(hours=24)


class ConversationStatus(str, Enum):
    """Conversation status enum."""

    ACTIVE = "active"
    EXPIRED = "expired"
    OPTED_OUT = "opted-out"


# Statuses an inbound message may attach to
OPEN_STATUSES = (ConversationStatus.ACTIVE.value, ConversationStatus.EXPIRED.value)


class Conversation(Base, TimestampMixin):
    """Represents the messaging relationship between a business and a contact."""

    __tablename__ = "conversations"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    account_id: Mapped[UUID] = mapped_column(nullable=False)
    whatsapp_number_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("whatsapp_numbers.id")
    )

    contact_number: Mapped[str] = mapped_column(String(20), nullable=False)  # digits only
    contact_name: Mapped[str | None] = mapped_column(String(255))

    last_message_at: Mapped[datetime] = mapped_column(nullable=False)
    session_start_at: Mapped[datetime] = mapped_column(nullable=False)
    session_end_at: Mapped[datetime | None] = mapped_column()

    status: Mapped[str] = mapped_column(
        String(20), default=ConversationStatus.ACTIVE.value, nullable=False
    )  # active, expired, opted-out

    # Relationships
    whatsapp_number: Mapped["WhatsAppNumber | None"] = relationship(  # noqa: F821
        back_populates="conversations"
    )
    messages: Mapped[list["Message"]] = relationship(back_populates="conversation")  # noqa: F821

    __table_args__ = (
        Index("ix_conversations_account_contact", "account_id", "contact_number"),
        Index("ix_conversations_account_last_message", "account_id", "last_message_at"),
        Index("ix_conversations_status", "status"),
    )

    @property
    def session_expires_at(self) -> datetime:
        """End of the current session window."""
        return self.session_start_at + SESSION_WINDOW
