"""SQLAlchemy models."""

from wacrm.models.conversation import (
    SESSION_WINDOW,
    Conversation,
    ConversationStatus,
)
from wacrm.models.message import (
    MESSAGE_RETENTION,
    Message,
    MessageDirection,
    MessageStatus,
)
from wacrm.models.whatsapp_number import NumberStatus, WhatsAppNumber
from wacrm.models.workflow import Workflow

__all__ = [
    "Conversation",
    "ConversationStatus",
    "MESSAGE_RETENTION",
    "Message",
    "MessageDirection",
    "MessageStatus",
    "NumberStatus",
    "SESSION_WINDOW",
    "WhatsAppNumber",
    "Workflow",
]
