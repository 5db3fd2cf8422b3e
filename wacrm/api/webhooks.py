"""Webhook endpoints for the WhatsApp Cloud API."""

import json
import logging

from fastapi import APIRouter, Query, Request
from fastapi.responses import PlainTextResponse
from redis.exceptions import RedisError

from wacrm.api.deps import DbSession, EventStore, get_default_account_id, get_session_window_policy
from wacrm.config import settings
from wacrm.core.exceptions import (
    SignatureVerificationError,
    StoreUnavailableError,
    WebhookVerificationError,
)
from wacrm.services.ingestion import WebhookIngestionService
from wacrm.services.webhook_verification import verify_signature, verify_subscription

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
logger = logging.getLogger(__name__)


@router.get("/whatsapp", response_class=PlainTextResponse)
async def verify_whatsapp_webhook(
    hub_mode: str | None = Query(None, alias="hub.mode"),
    hub_verify_token: str | None = Query(None, alias="hub.verify_token"),
    hub_challenge: str | None = Query(None, alias="hub.challenge"),
):
    """Subscription handshake: echo the challenge when the token matches."""
    try:
        challenge = verify_subscription(
            hub_mode, hub_verify_token, hub_challenge, settings.WHATSAPP_VERIFY_TOKEN
        )
    except WebhookVerificationError as e:
        logger.warning(f"Webhook verification rejected: {e}")
        return PlainTextResponse("Forbidden", status_code=403)

    logger.info("Webhook subscription verified")
    return PlainTextResponse(challenge, status_code=200)


@router.post("/whatsapp", response_class=PlainTextResponse)
async def receive_whatsapp_webhook(
    request: Request,
    db: DbSession,
    events: EventStore,
):
    """Receive message and status notifications.

    Deliveries are acknowledged with 200 even when individual events are
    skipped. A 500 asks the provider to redeliver: the body was not JSON,
    or the database was unreachable.
    """
    body = await request.body()

    if settings.WHATSAPP_APP_SECRET:
        try:
            verify_signature(
                body,
                request.headers.get("X-Hub-Signature-256", ""),
                settings.WHATSAPP_APP_SECRET,
            )
        except SignatureVerificationError as e:
            logger.warning(f"Webhook signature rejected: {e}")
            return PlainTextResponse("OK", status_code=200)

    try:
        payload = json.loads(body)
    except ValueError as e:
        logger.error(f"Webhook body is not valid JSON: {e}")
        return PlainTextResponse("Invalid payload", status_code=500)

    event_id = await _log_delivery(events, payload)

    service = WebhookIngestionService(
        db,
        default_account_id=get_default_account_id(),
        policy=get_session_window_policy(),
    )
    try:
        result = await service.process_payload(payload)
    except StoreUnavailableError as e:
        await _log_outcome(events, event_id, "failed", error=str(e))
        return PlainTextResponse("Store unavailable", status_code=500)

    await _log_outcome(events, event_id, "processed", result=result.as_dict())
    return PlainTextResponse("OK", status_code=200)


def _phone_number_ids(payload) -> list[str]:
    ids = []
    if not isinstance(payload, dict):
        return ids
    entries = payload.get("entry")
    for entry in entries if isinstance(entries, list) else []:
        changes = entry.get("changes") if isinstance(entry, dict) else None
        for change in changes if isinstance(changes, list) else []:
            value = change.get("value") if isinstance(change, dict) else None
            metadata = value.get("metadata") if isinstance(value, dict) else None
            if isinstance(metadata, dict) and metadata.get("phone_number_id"):
                ids.append(str(metadata["phone_number_id"]))
    return ids


async def _log_delivery(events: EventStore, payload) -> str | None:
    # The debug log is best-effort; ingestion continues without Redis
    if not settings.WEBHOOK_EVENT_LOG_ENABLED:
        return None
    try:
        return await events.store_delivery(payload, _phone_number_ids(payload))
    except RedisError as e:
        logger.warning(f"Failed to log webhook delivery: {e}")
        return None


async def _log_outcome(
    events: EventStore,
    event_id: str | None,
    status: str,
    result: dict[str, int] | None = None,
    error: str | None = None,
) -> None:
    if event_id is None:
        return
    try:
        await events.update_status(event_id, status, result=result, error=error)
    except RedisError as e:
        logger.warning(f"Failed to update webhook event {event_id}: {e}")
