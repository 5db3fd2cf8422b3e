"""Repository classes for database operations."""

from wacrm.db.repositories.base import BaseRepository
from wacrm.db.repositories.conversation import ConversationRepository
from wacrm.db.repositories.message import MessageRepository
from wacrm.db.repositories.whatsapp_number import WhatsAppNumberRepository
from wacrm.db.repositories.workflow import WorkflowRepository

__all__ = [
    "BaseRepository",
    "ConversationRepository",
    "MessageRepository",
    "WhatsAppNumberRepository",
    "WorkflowRepository",
]
