"""Single entry point for outbound messages."""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from uuid import UUID

from pydantic import BaseModel

from wacrm.core.exceptions import (
    ConversationNotFoundError,
    ConversationOptedOutError,
    NumberNotApprovedError,
    OutboundDispatchError,
    SessionExpiredError,
)
from wacrm.core.telemetry import get_tracer
from wacrm.db.repositories import ConversationRepository, WhatsAppNumberRepository
from wacrm.models import Message
from wacrm.models.message import MessageStatus
from wacrm.services.message_store import MessageStore
from wacrm.services.session_manager import REASON_OPTED_OUT, ConversationSessionManager

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

Dispatcher = Callable[[UUID], Awaitable[None]]


class OutboundSendGate:
    """Checks the session window before recording and dispatching a message.

    Inbound messages never pass through here; a contact can always write in.
    """

    def __init__(
        self,
        session_manager: ConversationSessionManager,
        numbers: WhatsAppNumberRepository,
        store: MessageStore,
        dispatch: Dispatcher,
    ):
        self.session_manager = session_manager
        self.conversations: ConversationRepository = session_manager.conversations
        self.numbers = numbers
        self.store = store
        self.dispatch = dispatch

    async def send(
        self,
        account_id: UUID,
        conversation_id: UUID,
        content: BaseModel,
        *,
        now: datetime | None = None,
        is_automated: bool = False,
    ) -> Message:
        """Record an outbound message and hand it to the transport.

        Raises:
            ConversationNotFoundError: No such conversation for the account.
            SessionExpiredError: The 24h window closed (conversation is
                marked expired; nothing is recorded).
            ConversationOptedOutError: The contact opted out.
            NumberNotApprovedError: The business number may not send.
            OutboundDispatchError: Recorded, but the transport hand-off
                failed; the message is marked failed.
        """
        now = now or datetime.now(timezone.utc)

        with tracer.start_as_current_span("outbound.send") as span:
            span.set_attribute("conversation.id", str(conversation_id))

            conversation = await self.conversations.get_for_account(account_id, conversation_id)
            if conversation is None:
                raise ConversationNotFoundError(conversation_id)

            check = await self.session_manager.check_outbound_allowed(conversation, now)
            if not check.allowed:
                span.set_attribute("outbound.blocked", check.reason or "")
                if check.reason == REASON_OPTED_OUT:
                    raise ConversationOptedOutError(conversation_id)
                raise SessionExpiredError(conversation_id)

            if conversation.whatsapp_number_id is not None:
                number = await self.numbers.get(conversation.whatsapp_number_id)
                if number is None or not number.can_send:
                    raise NumberNotApprovedError(conversation.whatsapp_number_id)

            message = await self.store.record_outbound(
                conversation_id, content, now, is_automated=is_automated
            )
            await self.conversations.touch_outbound(conversation_id, now)

            try:
                await self.dispatch(message.id)
            except Exception as e:
                logger.error(f"Failed to dispatch outbound message {message.id}: {e}")
                await self.store.apply_status_update(
                    message.provider_message_id,
                    MessageStatus.FAILED.value,
                    now,
                    errors=[{"title": "dispatch failed", "message": str(e)}],
                )
                raise OutboundDispatchError(str(e)) from e

            logger.info(f"Outbound message {message.id} queued for conversation {conversation_id}")
            return message
