"""Message model for WhatsApp messages."""

from datetime import datetime, timedelta
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import Boolean, ForeignKey, Index, String
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wacrm.db.base import Base, JSONType
from wacrm.models.base import TimestampMixin

# Messages older than this are eligible for deletion; provider message ids
# are only deduplicated within this window.
MESSAGE_RETENTION = timedelta(days=30)


class MessageDirection(str, Enum):
    """Message direction enum."""

    INBOUND = "inbound"
    OUTBOUND = "outbound"


class MessageStatus(str, Enum):
    """Message status enum."""

    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"


class Message(Base, TimestampMixin):
    """Represents a WhatsApp message."""

    __tablename__ = "messages"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    conversation_id: Mapped[UUID] = mapped_column(
        ForeignKey("conversations.id"), nullable=False
    )

    # Provider-assigned id for inbound messages, local id until the
    # transport accepts an outbound one
    provider_message_id: Mapped[str] = mapped_column(String(128), nullable=False)

    direction: Mapped[MessageDirection] = mapped_column(
        SQLEnum(MessageDirection), nullable=False
    )
    status: Mapped[MessageStatus] = mapped_column(
        SQLEnum(MessageStatus), default=MessageStatus.SENT, nullable=False
    )

    content_type: Mapped[str] = mapped_column(
        String(20), default="text", nullable=False
    )  # text, image, document, template, unknown
    content: Mapped[dict] = mapped_column(JSONType, nullable=False)

    timestamp: Mapped[datetime] = mapped_column(nullable=False)
    status_updated_at: Mapped[datetime | None] = mapped_column()
    is_automated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    extra_data: Mapped[dict | None] = mapped_column(JSONType)

    # Relationships
    conversation: Mapped["Conversation"] = relationship(  # noqa: F821
        back_populates="messages"
    )

    __table_args__ = (
        Index("ix_messages_provider_message_id", "provider_message_id", unique=True),
        Index("ix_messages_conversation_timestamp", "conversation_id", "timestamp"),
        Index("ix_messages_created_at", "created_at"),
    )
