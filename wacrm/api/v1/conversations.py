"""Conversation inbox and messaging endpoints."""

import logging
from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Query

from wacrm.api.deps import CurrentAccount, DbSession, SendGate, SessionManager
from wacrm.core.exceptions import (
    BadGatewayError,
    ConflictError,
    ConversationNotFoundError,
    ConversationOptedOutError,
    ForbiddenError,
    NotFoundError,
    NumberNotApprovedError,
    OutboundDispatchError,
    SessionExpiredError,
)
from wacrm.db.repositories import ConversationRepository, MessageRepository
from wacrm.models import Conversation
from wacrm.models.conversation import ConversationStatus
from wacrm.models.message import MessageDirection
from wacrm.schemas import (
    ConversationDetail,
    ConversationList,
    ConversationStats,
    ConversationStatusUpdate,
    ConversationSummary,
    LastMessage,
    MarkReadRequest,
    MarkReadResponse,
    MessageList,
    MessageSend,
    MessageSent,
)
from wacrm.services.message_store import MessageStore

router = APIRouter(prefix="/conversations", tags=["conversations"])
logger = logging.getLogger(__name__)


async def _get_conversation(
    repo: ConversationRepository, account_id: UUID, conversation_id: UUID
) -> Conversation:
    conversation = await repo.get_for_account(account_id, conversation_id)
    if not conversation:
        raise NotFoundError("Conversation", str(conversation_id))
    return conversation


@router.get("", response_model=ConversationList)
async def list_conversations(
    db: DbSession,
    account_id: CurrentAccount,
    sessions: SessionManager,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    status: ConversationStatus | None = None,
    whatsapp_number_id: UUID | None = None,
):
    """List conversations, most recently active first.

    Sessions past their window are expired before they are returned.
    """
    now = datetime.now(timezone.utc)
    await sessions.expire_elapsed(account_id, now)

    repo = ConversationRepository(db)
    items, total = await repo.list(
        account_id=account_id,
        skip=skip,
        limit=limit,
        status=status,
        whatsapp_number_id=whatsapp_number_id,
    )

    summaries = []
    for conversation in items:
        conversation = await sessions.refresh_status(conversation, now)
        last_message = await repo.get_last_message(conversation.id)
        summary = ConversationSummary.model_validate(conversation)
        summary.last_message = LastMessage.model_validate(last_message) if last_message else None
        summary.unread_count = await repo.count_unread(conversation.id)
        summaries.append(summary)

    return ConversationList(items=summaries, total=total, skip=skip, limit=limit)


@router.get("/stats", response_model=ConversationStats)
async def get_conversation_stats(
    db: DbSession,
    account_id: CurrentAccount,
    sessions: SessionManager,
    whatsapp_number_id: UUID | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
):
    """Conversation counts per status, optionally for a creation-date range."""
    await sessions.expire_elapsed(account_id, datetime.now(timezone.utc))
    repo = ConversationRepository(db)
    stats = await repo.get_stats(
        account_id, whatsapp_number_id, date_from=date_from, date_to=date_to
    )
    return ConversationStats(**stats)


@router.get("/{conversation_id}", response_model=ConversationDetail)
async def get_conversation(
    conversation_id: UUID,
    db: DbSession,
    account_id: CurrentAccount,
    sessions: SessionManager,
):
    """Get conversation details."""
    conversation = await _get_conversation(
        ConversationRepository(db), account_id, conversation_id
    )
    return await sessions.refresh_status(conversation, datetime.now(timezone.utc))


@router.patch("/{conversation_id}/status", response_model=ConversationDetail)
async def update_conversation_status(
    conversation_id: UUID,
    data: ConversationStatusUpdate,
    db: DbSession,
    account_id: CurrentAccount,
    sessions: SessionManager,
):
    """Set a conversation's status, e.g. when the contact opts out."""
    conversation = await _get_conversation(
        ConversationRepository(db), account_id, conversation_id
    )
    return await sessions.update_status(
        conversation, data.status, datetime.now(timezone.utc)
    )


@router.get("/{conversation_id}/messages", response_model=MessageList)
async def list_conversation_messages(
    conversation_id: UUID,
    db: DbSession,
    account_id: CurrentAccount,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    direction: MessageDirection | None = None,
):
    """List messages of a conversation, oldest first within the page."""
    await _get_conversation(ConversationRepository(db), account_id, conversation_id)

    items, total = await MessageRepository(db).list(
        conversation_id=conversation_id,
        skip=skip,
        limit=limit,
        direction=direction,
    )
    return MessageList(items=items, total=total, skip=skip, limit=limit)


@router.post("/{conversation_id}/messages", response_model=MessageSent, status_code=201)
async def send_message(
    conversation_id: UUID,
    data: MessageSend,
    account_id: CurrentAccount,
    gate: SendGate,
):
    """Send a message into a conversation's open session."""
    try:
        message = await gate.send(
            account_id,
            conversation_id,
            data.content,
            is_automated=data.is_automated,
        )
    except ConversationNotFoundError:
        raise NotFoundError("Conversation", str(conversation_id))
    except SessionExpiredError:
        raise ConflictError("Conversation session expired (24h limit)")
    except ConversationOptedOutError:
        raise ConflictError("Contact has opted out")
    except NumberNotApprovedError:
        raise ForbiddenError("WhatsApp number is not approved for sending")
    except OutboundDispatchError as e:
        raise BadGatewayError(f"Message could not be queued for delivery: {e}")

    return MessageSent(
        id=message.id,
        message_id=message.provider_message_id,
        conversation_id=message.conversation_id,
        status=message.status,
        timestamp=message.timestamp,
    )


@router.post("/{conversation_id}/read", response_model=MarkReadResponse)
async def mark_conversation_read(
    conversation_id: UUID,
    db: DbSession,
    account_id: CurrentAccount,
    data: MarkReadRequest | None = None,
):
    """Mark inbound messages as read."""
    await _get_conversation(ConversationRepository(db), account_id, conversation_id)

    store = MessageStore(MessageRepository(db))
    updated = await store.mark_conversation_read(
        conversation_id,
        datetime.now(timezone.utc),
        message_ids=data.message_ids if data else None,
    )
    return MarkReadResponse(updated=updated)
