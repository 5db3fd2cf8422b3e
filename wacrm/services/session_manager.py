"""Conversation resolution and 24-hour session window enforcement."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from uuid import UUID

from wacrm.db.repositories import ConversationRepository
from wacrm.models import Conversation
from wacrm.models.conversation import SESSION_WINDOW, ConversationStatus

logger = logging.getLogger(__name__)

# Conditional updates that lose a race are retried against a fresh read
MAX_RESOLVE_ATTEMPTS = 3

REASON_SESSION_EXPIRED = "session expired"
REASON_OPTED_OUT = "contact opted out"


class SessionWindowPolicy(str, Enum):
    """How an inbound message affects the session start of a reused conversation."""

    # Keep the original session start; an old conversation may be reopened
    # already past its window.
    FIXED = "fixed"
    # Start a new window when the message arrives after the current one closed.
    RENEW_AFTER_EXPIRY = "renew_after_expiry"
    # Every inbound message restarts the window.
    ROLLING = "rolling"


@dataclass(frozen=True)
class OutboundCheck:
    """Result of checking whether an outbound message may be sent."""

    allowed: bool
    reason: str | None = None


class ConversationSessionManager:
    """Resolves conversations for inbound messages and gates outbound ones."""

    def __init__(
        self,
        conversations: ConversationRepository,
        *,
        window: timedelta = SESSION_WINDOW,
        policy: SessionWindowPolicy = SessionWindowPolicy.RENEW_AFTER_EXPIRY,
    ):
        self.conversations = conversations
        self.window = window
        self.policy = policy

    async def resolve_for_inbound(
        self,
        account_id: UUID,
        contact_number: str,
        timestamp: datetime,
        contact_name: str | None = None,
        whatsapp_number_id: UUID | None = None,
    ) -> Conversation:
        """Find or create the conversation an inbound message belongs to.

        The most recent active or expired conversation for the contact is
        reused and reactivated; opted-out conversations are never selected.
        """
        for _ in range(MAX_RESOLVE_ATTEMPTS):
            conversation = await self.conversations.find_latest_open(
                account_id, contact_number
            )
            if conversation is None:
                conversation = await self.conversations.open_session(
                    account_id=account_id,
                    contact_number=contact_number,
                    timestamp=timestamp,
                    contact_name=contact_name,
                    whatsapp_number_id=whatsapp_number_id,
                )
                logger.info(
                    f"Opened conversation {conversation.id} for contact {contact_number}"
                )
                return conversation

            conversation_id = conversation.id
            session_start_at = self._next_session_start(conversation, timestamp)
            updated = await self.conversations.touch_inbound(
                conversation,
                timestamp=timestamp,
                session_start_at=session_start_at,
                contact_name=contact_name,
            )
            if updated:
                if session_start_at != conversation.session_start_at:
                    logger.info(
                        f"Renewed session of conversation {conversation_id} at {timestamp.isoformat()}"
                    )
                return await self.conversations.get(conversation_id, fresh=True)

            logger.debug(f"Conversation {conversation_id} changed concurrently, re-resolving")

        raise RuntimeError(
            f"could not resolve conversation for {contact_number} after "
            f"{MAX_RESOLVE_ATTEMPTS} attempts"
        )

    def _next_session_start(self, conversation: Conversation, timestamp: datetime) -> datetime:
        current = conversation.session_start_at
        if self.policy == SessionWindowPolicy.FIXED:
            return current
        if self.policy == SessionWindowPolicy.ROLLING:
            return max(current, timestamp)

        elapsed = timestamp >= current + self.window
        if elapsed or conversation.status == ConversationStatus.EXPIRED.value:
            return max(current, timestamp)
        return current

    async def check_outbound_allowed(
        self, conversation: Conversation, now: datetime
    ) -> OutboundCheck:
        """Decide whether a free-form outbound message may be sent now.

        An active conversation past its window is transitioned to expired
        with ``session_end_at`` set to the window end. A conversation already
        marked expired is refused even inside its window: only an inbound
        message from the contact reopens it.
        """
        if conversation.status == ConversationStatus.OPTED_OUT.value:
            return OutboundCheck(allowed=False, reason=REASON_OPTED_OUT)

        if conversation.status == ConversationStatus.EXPIRED.value:
            return OutboundCheck(allowed=False, reason=REASON_SESSION_EXPIRED)

        session_end = conversation.session_start_at + self.window
        if now > session_end:
            if await self.conversations.expire_if_active(conversation, session_end):
                logger.info(f"Conversation {conversation.id} session expired at {session_end.isoformat()}")
            return OutboundCheck(allowed=False, reason=REASON_SESSION_EXPIRED)

        return OutboundCheck(allowed=True)

    async def refresh_status(self, conversation: Conversation, now: datetime) -> Conversation:
        """Apply any pending expiry so read paths report the effective status."""
        session_end = conversation.session_start_at + self.window
        if conversation.status != ConversationStatus.ACTIVE.value or now <= session_end:
            return conversation

        await self.conversations.expire_if_active(conversation, session_end)
        return await self.conversations.get(conversation.id, fresh=True)

    async def expire_elapsed(self, account_id: UUID, now: datetime) -> int:
        """Apply pending expiry to every elapsed session of an account.

        Run before queries that filter or count by status. Returns the
        number of conversations transitioned.
        """
        expired = 0
        for conversation in await self.conversations.list_elapsed(account_id, now - self.window):
            session_end = conversation.session_start_at + self.window
            if await self.conversations.expire_if_active(conversation, session_end):
                expired += 1
        if expired:
            logger.info(f"Expired {expired} elapsed sessions for account {account_id}")
        return expired

    async def update_status(
        self,
        conversation: Conversation,
        status: ConversationStatus,
        now: datetime,
    ) -> Conversation:
        """Explicit status change made by a user, e.g. opting a contact out."""
        session_end_at = None if status == ConversationStatus.ACTIVE else now
        await self.conversations.set_status(conversation.id, status, session_end_at)
        logger.info(f"Conversation {conversation.id} status set to {status.value}")
        return await self.conversations.get(conversation.id, fresh=True)
