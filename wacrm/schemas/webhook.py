"""Canonical events produced from provider webhook deliveries."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from wacrm.schemas.content import (
    DocumentContent,
    ImageContent,
    TextContent,
    UnknownContent,
)

InboundContent = TextContent | ImageContent | DocumentContent | UnknownContent


@dataclass(frozen=True)
class InboundMessageEvent:
    """A message a contact sent to one of the business numbers."""

    phone_number_id: str | None
    from_number: str
    provider_message_id: str
    timestamp_seconds: int
    content: InboundContent
    contact_name: str | None = None

    @property
    def timestamp(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp_seconds, tz=timezone.utc)


@dataclass(frozen=True)
class StatusUpdateEvent:
    """Delivery status reported for a previously sent message."""

    provider_message_id: str
    status: str
    timestamp_seconds: int
    recipient_id: str | None = None
    errors: list[dict[str, Any]] = field(default_factory=list)

    @property
    def timestamp(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp_seconds, tz=timezone.utc)


WebhookEvent = InboundMessageEvent | StatusUpdateEvent
