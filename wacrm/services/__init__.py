"""Business logic services."""

from wacrm.services.ingestion import IngestionResult, WebhookIngestionService
from wacrm.services.message_store import MessageStore
from wacrm.services.queue import publish_outgoing_message
from wacrm.services.send_gate import OutboundSendGate
from wacrm.services.session_manager import ConversationSessionManager, SessionWindowPolicy
from wacrm.services.whatsapp_client import WhatsAppCloudClient

__all__ = [
    "ConversationSessionManager",
    "IngestionResult",
    "MessageStore",
    "OutboundSendGate",
    "SessionWindowPolicy",
    "WebhookIngestionService",
    "WhatsAppCloudClient",
    "publish_outgoing_message",
]
