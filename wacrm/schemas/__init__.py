"""Pydantic schemas for request/response models."""

from wacrm.schemas.content import (
    DocumentContent,
    ImageContent,
    MessageContent,
    OutboundContent,
    TemplateContent,
    TextContent,
    UnknownContent,
    parse_content,
)
from wacrm.schemas.conversation import (
    ConversationDetail,
    ConversationList,
    ConversationStats,
    ConversationStatusUpdate,
    ConversationSummary,
    LastMessage,
)
from wacrm.schemas.message import (
    MarkReadRequest,
    MarkReadResponse,
    MessageDetail,
    MessageList,
    MessageSend,
    MessageSent,
)
from wacrm.schemas.webhook import InboundMessageEvent, StatusUpdateEvent, WebhookEvent
from wacrm.schemas.whatsapp_number import (
    WhatsAppNumberCreate,
    WhatsAppNumberDetail,
    WhatsAppNumberUpdate,
)
from wacrm.schemas.workflow import (
    WorkflowCreate,
    WorkflowDetail,
    WorkflowDuplicate,
    WorkflowList,
    WorkflowSummary,
    WorkflowUpdate,
)

__all__ = [
    # Content
    "DocumentContent",
    "ImageContent",
    "MessageContent",
    "OutboundContent",
    "TemplateContent",
    "TextContent",
    "UnknownContent",
    "parse_content",
    # Conversation
    "ConversationDetail",
    "ConversationList",
    "ConversationStats",
    "ConversationStatusUpdate",
    "ConversationSummary",
    "LastMessage",
    # Message
    "MarkReadRequest",
    "MarkReadResponse",
    "MessageDetail",
    "MessageList",
    "MessageSend",
    "MessageSent",
    # Webhook events
    "InboundMessageEvent",
    "StatusUpdateEvent",
    "WebhookEvent",
    # WhatsApp number
    "WhatsAppNumberCreate",
    "WhatsAppNumberDetail",
    "WhatsAppNumberUpdate",
    # Workflow
    "WorkflowCreate",
    "WorkflowDetail",
    "WorkflowDuplicate",
    "WorkflowList",
    "WorkflowSummary",
    "WorkflowUpdate",
]
