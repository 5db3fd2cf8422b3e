"""Debug endpoints for viewing webhook deliveries."""

from fastapi import APIRouter, HTTPException, Query

from wacrm.api.deps import CurrentAccount, EventStore

router = APIRouter(prefix="/debug", tags=["debug"])


@router.get("/webhooks")
async def list_webhook_events(
    events: EventStore,
    account_id: CurrentAccount,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    phone_number_id: str | None = None,
    status: str | None = None,
):
    """List recent webhook deliveries, newest first."""
    items, total = await events.get_events(
        limit=limit,
        offset=skip,
        phone_number_id=phone_number_id,
        status=status,
    )
    return {"items": items, "total": total, "skip": skip, "limit": limit}


@router.get("/webhooks/{event_id}")
async def get_webhook_event(
    event_id: str,
    events: EventStore,
    account_id: CurrentAccount,
):
    """Get a single delivery with its raw payload."""
    event = await events.get_event(event_id)
    if not event:
        raise HTTPException(404, "Event not found")
    return event


@router.delete("/webhooks")
async def clear_webhook_events(
    events: EventStore,
    account_id: CurrentAccount,
):
    """Clear all stored deliveries."""
    await events.clear_events()
    return {"status": "cleared"}
