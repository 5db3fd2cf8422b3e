"""Common API dependencies."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from wacrm.config import settings
from wacrm.core.exceptions import UnauthorizedError
from wacrm.db.repositories import ConversationRepository, MessageRepository, WhatsAppNumberRepository
from wacrm.db.session import get_db
from wacrm.services.message_store import MessageStore
from wacrm.services.queue import publish_outgoing_message
from wacrm.services.send_gate import OutboundSendGate
from wacrm.services.session_manager import ConversationSessionManager, SessionWindowPolicy
from wacrm.services.webhook_event_store import WebhookEventStore


async def get_redis() -> AsyncGenerator[Redis, None]:
    """Dependency for getting async Redis client."""
    redis = Redis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        yield redis
    finally:
        await redis.aclose()


async def get_current_account(
    x_account_id: Annotated[str | None, Header()] = None,
) -> UUID:
    """Account the request acts for.

    The header is set by the authentication layer in front of this service.
    """
    if not x_account_id:
        raise UnauthorizedError("Missing X-Account-Id header")
    try:
        return UUID(x_account_id)
    except ValueError:
        raise UnauthorizedError("Invalid X-Account-Id header")


def get_session_window_policy() -> SessionWindowPolicy:
    return SessionWindowPolicy(settings.SESSION_WINDOW_POLICY)


def get_default_account_id() -> UUID | None:
    """Account owning webhook traffic for unregistered business numbers."""
    if not settings.WHATSAPP_DEFAULT_ACCOUNT_ID:
        return None
    return UUID(settings.WHATSAPP_DEFAULT_ACCOUNT_ID)


async def get_webhook_event_store(
    redis: Annotated[Redis, Depends(get_redis)],
) -> WebhookEventStore:
    return WebhookEventStore(redis)


async def get_session_manager(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ConversationSessionManager:
    return ConversationSessionManager(
        ConversationRepository(db), policy=get_session_window_policy()
    )


async def get_send_gate(
    db: Annotated[AsyncSession, Depends(get_db)],
    session_manager: Annotated[ConversationSessionManager, Depends(get_session_manager)],
) -> OutboundSendGate:
    return OutboundSendGate(
        session_manager,
        WhatsAppNumberRepository(db),
        MessageStore(MessageRepository(db)),
        dispatch=publish_outgoing_message,
    )


# Type aliases for cleaner annotations
DbSession = Annotated[AsyncSession, Depends(get_db)]
RedisClient = Annotated[Redis, Depends(get_redis)]
CurrentAccount = Annotated[UUID, Depends(get_current_account)]
EventStore = Annotated[WebhookEventStore, Depends(get_webhook_event_store)]
SessionManager = Annotated[ConversationSessionManager, Depends(get_session_manager)]
SendGate = Annotated[OutboundSendGate, Depends(get_send_gate)]
