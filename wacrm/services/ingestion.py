"""Webhook ingestion: normalized events into conversations and messages."""

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from wacrm.core.exceptions import StoreUnavailableError
from wacrm.core.telemetry import get_tracer
from wacrm.db.repositories import (
    ConversationRepository,
    MessageRepository,
    WhatsAppNumberRepository,
)
from wacrm.schemas.webhook import InboundMessageEvent, StatusUpdateEvent
from wacrm.services.message_store import MessageStore
from wacrm.services.payload_normalizer import normalize_webhook
from wacrm.services.session_manager import ConversationSessionManager, SessionWindowPolicy

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)


@dataclass
class IngestionResult:
    """Per-delivery event counts."""

    processed: int = 0
    duplicates: int = 0
    skipped: int = 0
    failed: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "duplicates": self.duplicates,
            "skipped": self.skipped,
            "failed": self.failed,
        }


@dataclass(frozen=True)
class _Recipient:
    account_id: UUID
    whatsapp_number_id: UUID | None


class WebhookIngestionService:
    """Applies one webhook delivery to the store.

    Each event is handled on its own; a failing event is rolled back and
    logged while its siblings are still applied. Only loss of the database
    connection aborts the delivery so the provider redelivers it.
    """

    def __init__(
        self,
        session: AsyncSession,
        default_account_id: UUID | None = None,
        policy: SessionWindowPolicy = SessionWindowPolicy.RENEW_AFTER_EXPIRY,
    ):
        self.session = session
        self.default_account_id = default_account_id
        self.numbers = WhatsAppNumberRepository(session)
        self.messages = MessageRepository(session)
        self.store = MessageStore(self.messages)
        self.sessions = ConversationSessionManager(
            ConversationRepository(session), policy=policy
        )
        self._recipients: dict[str | None, _Recipient | None] = {}

    async def process_payload(self, payload: Any) -> IngestionResult:
        """Normalize and apply a raw webhook delivery.

        Raises:
            StoreUnavailableError: The database could not be reached.
        """
        result = IngestionResult()
        events = normalize_webhook(payload)

        with tracer.start_as_current_span("webhook.ingest") as span:
            span.set_attribute("webhook.events", len(events))

            for event in events:
                try:
                    if isinstance(event, InboundMessageEvent):
                        outcome = await self._handle_inbound(event)
                    else:
                        outcome = await self._handle_status(event)
                except (OperationalError, InterfaceError) as e:
                    logger.error(f"Database unavailable during webhook ingestion: {e}")
                    raise StoreUnavailableError(str(e)) from e
                except Exception as e:
                    logger.exception(
                        f"Failed to apply webhook event {event.provider_message_id}: {e}"
                    )
                    await self.session.rollback()
                    result.failed += 1
                    continue

                setattr(result, outcome, getattr(result, outcome) + 1)

            span.set_attribute("webhook.processed", result.processed)
            span.set_attribute("webhook.failed", result.failed)

        logger.info(
            f"Webhook ingested: {result.processed} processed, {result.duplicates} duplicate, "
            f"{result.skipped} skipped, {result.failed} failed"
        )
        return result

    async def _handle_inbound(self, event: InboundMessageEvent) -> str:
        recipient = await self._resolve_recipient(event.phone_number_id)
        if recipient is None:
            logger.warning(
                f"No account for phone_number_id {event.phone_number_id!r}, "
                f"skipping message {event.provider_message_id}"
            )
            return "skipped"

        # A redelivery must not reopen or touch the conversation
        if await self.messages.get_by_provider_id(event.provider_message_id):
            logger.debug(f"Duplicate inbound message {event.provider_message_id} ignored")
            return "duplicates"

        conversation = await self.sessions.resolve_for_inbound(
            account_id=recipient.account_id,
            contact_number=event.from_number,
            timestamp=event.timestamp,
            contact_name=event.contact_name,
            whatsapp_number_id=recipient.whatsapp_number_id,
        )
        conversation_id = conversation.id

        _, created = await self.store.record_inbound(
            conversation_id,
            event.provider_message_id,
            event.content,
            event.timestamp,
        )
        if not created:
            return "duplicates"

        logger.info(
            f"Inbound {event.content.type} message {event.provider_message_id} "
            f"recorded in conversation {conversation_id}"
        )
        return "processed"

    async def _handle_status(self, event: StatusUpdateEvent) -> str:
        message = await self.store.apply_status_update(
            event.provider_message_id,
            event.status,
            event.timestamp,
            errors=event.errors,
        )
        return "processed" if message is not None else "skipped"

    async def _resolve_recipient(self, phone_number_id: str | None) -> _Recipient | None:
        """Account owning the business number a delivery was addressed to."""
        if phone_number_id in self._recipients:
            return self._recipients[phone_number_id]

        recipient = None
        number = (
            await self.numbers.get_by_phone_number_id(phone_number_id)
            if phone_number_id
            else None
        )
        if number is not None:
            recipient = _Recipient(number.account_id, number.id)
        elif self.default_account_id is not None:
            recipient = _Recipient(self.default_account_id, None)

        self._recipients[phone_number_id] = recipient
        return recipient
