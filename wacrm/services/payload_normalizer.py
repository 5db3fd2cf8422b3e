"""Normalize WhatsApp Cloud API webhook deliveries into canonical events.

Payload structure:
{
  "object": "whatsapp_business_account",
  "entry": [{
    "id": "WABA_ID",
    "changes": [{
      "field": "messages",
      "value": {
        "messaging_product": "whatsapp",
        "metadata": {"display_phone_number": "...", "phone_number_id": "..."},
        "contacts": [{"profile": {"name": "..."}, "wa_id": "PHONE"}],
        "messages": [{"from": "PHONE", "id": "wamid...", "timestamp": "1710926100",
                      "type": "text", "text": {"body": "..."}}],
        "statuses": [{"id": "wamid...", "status": "delivered",
                      "timestamp": "1710926200", "recipient_id": "PHONE"}]
      }
    }]
  }]
}

A single delivery may batch several entries, changes, messages and
statuses. Nothing here raises on malformed input: the offending item is
logged and skipped and its siblings are still normalized.
"""

import logging
import re
from typing import Any

from pydantic import ValidationError

from wacrm.schemas.content import DocumentContent, ImageContent, TextContent, UnknownContent
from wacrm.schemas.webhook import (
    InboundContent,
    InboundMessageEvent,
    StatusUpdateEvent,
    WebhookEvent,
)

logger = logging.getLogger(__name__)

BUSINESS_ACCOUNT_OBJECT = "whatsapp_business_account"

MESSAGES_FIELD = "messages"
MESSAGE_STATUS_FIELD = "message_status"

_NON_DIGITS = re.compile(r"\D")


class MalformedPayloadError(ValueError):
    """A webhook item does not match the documented shape."""


def canonical_number(raw: str) -> str:
    """Digits-only phone number with country code."""
    return _NON_DIGITS.sub("", raw or "")


def normalize_webhook(payload: Any) -> list[WebhookEvent]:
    """Flatten a webhook delivery into inbound message and status events.

    Events are returned in the order they appear in the payload.
    """
    if not isinstance(payload, dict):
        logger.warning("Webhook payload is not an object, ignoring")
        return []

    if payload.get("object") != BUSINESS_ACCOUNT_OBJECT:
        logger.debug(f"Ignoring webhook for object {payload.get('object')!r}")
        return []

    entries = payload.get("entry")
    if not isinstance(entries, list):
        logger.warning("Webhook payload has no entry list")
        return []

    events: list[WebhookEvent] = []
    for entry in entries:
        changes = entry.get("changes") if isinstance(entry, dict) else None
        if not isinstance(changes, list):
            logger.warning("Skipping malformed webhook entry")
            continue

        for change in changes:
            if not isinstance(change, dict) or not isinstance(change.get("value"), dict):
                logger.warning("Skipping malformed webhook change")
                continue

            field = change.get("field")
            value = change["value"]
            if field == MESSAGES_FIELD:
                events.extend(_message_events(value))
                events.extend(_status_events(value))
            elif field == MESSAGE_STATUS_FIELD:
                events.extend(_status_events(value))
            else:
                logger.debug(f"Ignoring webhook change field {field!r}")

    return events


def _message_events(value: dict[str, Any]) -> list[InboundMessageEvent]:
    messages = value.get("messages")
    if not messages:
        return []
    if not isinstance(messages, list):
        logger.warning("Skipping webhook change with malformed messages list")
        return []

    metadata = value.get("metadata")
    phone_number_id = metadata.get("phone_number_id") if isinstance(metadata, dict) else None
    contacts = value.get("contacts") if isinstance(value.get("contacts"), list) else []

    events = []
    for index, message in enumerate(messages):
        try:
            events.append(_parse_message(message, index, contacts, phone_number_id))
        except (MalformedPayloadError, ValidationError) as e:
            logger.warning(f"Skipping malformed inbound message: {e}")
    return events


def _status_events(value: dict[str, Any]) -> list[StatusUpdateEvent]:
    statuses = value.get("statuses")
    if not statuses:
        return []
    if not isinstance(statuses, list):
        logger.warning("Skipping webhook change with malformed statuses list")
        return []

    events = []
    for status in statuses:
        try:
            events.append(_parse_status(status))
        except MalformedPayloadError as e:
            logger.warning(f"Skipping malformed status update: {e}")
    return events


def _parse_message(
    message: Any,
    index: int,
    contacts: list[Any],
    phone_number_id: str | None,
) -> InboundMessageEvent:
    if not isinstance(message, dict):
        raise MalformedPayloadError("message is not an object")

    message_id = message.get("id")
    if not message_id or not isinstance(message_id, str):
        raise MalformedPayloadError("missing or invalid message id")

    sender = canonical_number(str(message.get("from") or ""))
    if not sender:
        raise MalformedPayloadError(f"message {message_id} has no sender")

    return InboundMessageEvent(
        phone_number_id=phone_number_id,
        from_number=sender,
        provider_message_id=message_id,
        timestamp_seconds=_parse_timestamp(message.get("timestamp")),
        content=_parse_content(message),
        contact_name=_contact_name(contacts, sender, index),
    )


def _parse_status(status: Any) -> StatusUpdateEvent:
    if not isinstance(status, dict):
        raise MalformedPayloadError("status is not an object")

    message_id = status.get("id")
    if not message_id or not isinstance(message_id, str):
        raise MalformedPayloadError("missing or invalid status message id")

    value = status.get("status")
    if not value or not isinstance(value, str):
        raise MalformedPayloadError(f"status for {message_id} has no value")

    errors = status.get("errors")
    recipient = status.get("recipient_id")
    return StatusUpdateEvent(
        provider_message_id=message_id,
        status=value,
        timestamp_seconds=_parse_timestamp(status.get("timestamp")),
        recipient_id=str(recipient) if recipient is not None else None,
        errors=[e for e in errors if isinstance(e, dict)] if isinstance(errors, list) else [],
    )


def _parse_content(message: dict[str, Any]) -> InboundContent:
    """Build the content variant for a message's ``type``.

    Types this service does not model, and known types whose payload is
    missing, become an UnknownContent placeholder so the message is still
    recorded.
    """
    message_type = str(message.get("type") or "")
    body = message.get(message_type)
    if not isinstance(body, dict):
        return UnknownContent(original_type=message_type)

    if message_type == "text" and isinstance(body.get("body"), str):
        return TextContent(body=body["body"])

    if message_type == "image" and body.get("id"):
        return ImageContent(media_id=str(body["id"]), caption=body.get("caption"))

    if message_type == "document" and body.get("id"):
        return DocumentContent(
            media_id=str(body["id"]),
            filename=body.get("filename"),
            caption=body.get("caption"),
        )

    return UnknownContent(original_type=message_type)


def _contact_name(contacts: list[Any], sender: str, index: int) -> str | None:
    """Profile name for the sender, matched by wa_id then by position."""
    candidates = [c for c in contacts if isinstance(c, dict)]
    match = next(
        (c for c in candidates if canonical_number(str(c.get("wa_id") or "")) == sender),
        None,
    )
    if match is None and index < len(contacts) and isinstance(contacts[index], dict):
        match = contacts[index]
    if match is None:
        return None

    profile = match.get("profile")
    name = profile.get("name") if isinstance(profile, dict) else None
    return name or None


def _parse_timestamp(raw: Any) -> int:
    """Provider timestamps are epoch seconds, usually as strings."""
    if isinstance(raw, bool):
        raise MalformedPayloadError(f"invalid timestamp {raw!r}")
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise MalformedPayloadError(f"invalid timestamp {raw!r}") from None
