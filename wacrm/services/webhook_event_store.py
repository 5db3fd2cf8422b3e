"""Recent raw webhook deliveries kept in Redis for debugging."""

import json
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from redis.asyncio import Redis


class WebhookEventStore:
    """Capped, expiring log of webhook deliveries and their outcome."""

    EVENTS_KEY = "wacrm:webhook_events"
    # Outcomes are keyed by event id, never by list position
    OUTCOMES_KEY = "wacrm:webhook_event_outcomes"
    MAX_EVENTS = 500
    EVENT_TTL = 86400  # 24 hours

    def __init__(self, redis: Redis):
        self.redis = redis

    async def store_delivery(
        self,
        payload: Any,
        phone_number_ids: list[str] | None = None,
        status: str = "received",
    ) -> str:
        """Log a delivery, return its event id."""
        event_id = str(uuid4())
        event = {
            "id": event_id,
            "phone_number_ids": phone_number_ids or [],
            "payload": payload,
            "status": status,
            "result": None,
            "error": None,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        await self.redis.lpush(self.EVENTS_KEY, json.dumps(event))
        await self.redis.ltrim(self.EVENTS_KEY, 0, self.MAX_EVENTS - 1)
        await self.redis.expire(self.EVENTS_KEY, self.EVENT_TTL)
        return event_id

    async def update_status(
        self,
        event_id: str,
        status: str,
        result: dict[str, int] | None = None,
        error: str | None = None,
    ) -> None:
        """Record the ingestion outcome (processed, failed) of a delivery."""
        outcome = {"status": status, "result": result, "error": error}
        await self.redis.hset(self.OUTCOMES_KEY, event_id, json.dumps(outcome))
        await self.redis.expire(self.OUTCOMES_KEY, self.EVENT_TTL)

    async def _all(self) -> list[dict]:
        raw_events = await self.redis.lrange(self.EVENTS_KEY, 0, -1)
        outcomes = await self.redis.hgetall(self.OUTCOMES_KEY)
        events = []
        for raw_event in raw_events:
            event = json.loads(raw_event)
            outcome = outcomes.get(event["id"])
            if outcome is not None:
                event.update(json.loads(outcome))
            events.append(event)
        return events

    async def _load(
        self, phone_number_id: str | None = None, status: str | None = None
    ) -> list[dict]:
        events = await self._all()
        if phone_number_id:
            events = [e for e in events if phone_number_id in e["phone_number_ids"]]
        if status:
            events = [e for e in events if e["status"] == status]
        return events

    async def get_events(
        self,
        limit: int = 50,
        offset: int = 0,
        phone_number_id: str | None = None,
        status: str | None = None,
    ) -> tuple[list[dict], int]:
        """Newest-first page of deliveries and the filtered total."""
        events = await self._load(phone_number_id, status)
        return events[offset : offset + limit], len(events)

    async def get_event(self, event_id: str) -> dict | None:
        return next((e for e in await self._all() if e["id"] == event_id), None)

    async def clear_events(self) -> None:
        await self.redis.delete(self.EVENTS_KEY, self.OUTCOMES_KEY)
