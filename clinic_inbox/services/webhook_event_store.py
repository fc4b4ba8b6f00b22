"""Recent webhook deliveries kept in Redis for troubleshooting."""

import json
from datetime import datetime, timezone
from uuid import uuid4

from redis.asyncio import Redis
from redis.exceptions import WatchError


class WebhookEventStore:
    """Capped, expiring list of raw webhook bodies and how they were handled."""

    EVENTS_KEY = "green_api:webhook_events"
    MAX_EVENTS = 200
    EVENT_TTL = 86400  # 24 hours

    def __init__(self, redis: Redis):
        self.redis = redis

    async def store_event(
        self,
        instance_id: str | None,
        event_type: str | None,
        payload: dict,
        status: str = "received",
    ) -> str:
        """Record a delivery as soon as it arrives; returns the event id."""
        event_id = str(uuid4())
        event = {
            "id": event_id,
            "instance_id": instance_id,
            "event_type": event_type,
            "payload": payload,
            "status": status,
            "error": None,
            "received_at": datetime.now(timezone.utc).isoformat(),
        }

        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.lpush(self.EVENTS_KEY, json.dumps(event))
            pipe.ltrim(self.EVENTS_KEY, 0, self.MAX_EVENTS - 1)
            pipe.expire(self.EVENTS_KEY, self.EVENT_TTL)
            await pipe.execute()

        return event_id

    async def update_status(self, event_id: str, status: str, error: str | None = None) -> bool:
        """Set the outcome (the receiver's status string) of a stored event.

        The list is watched between the read and the LSET; a concurrent push
        shifts indexes, so the lookup is retried. Returns False once the event
        has been trimmed away.
        """
        async with self.redis.pipeline(transaction=True) as pipe:
            while True:
                try:
                    await pipe.watch(self.EVENTS_KEY)
                    raw_events = await pipe.lrange(self.EVENTS_KEY, 0, -1)
                    for index, raw_event in enumerate(raw_events):
                        event = json.loads(raw_event)
                        if event["id"] == event_id:
                            break
                    else:
                        return False

                    event["status"] = status
                    event["error"] = error
                    pipe.multi()
                    pipe.lset(self.EVENTS_KEY, index, json.dumps(event))
                    await pipe.execute()
                    return True
                except WatchError:
                    continue

    async def _load(self, instance_id: str | None, event_type: str | None) -> list[dict]:
        events = [json.loads(raw) for raw in await self.redis.lrange(self.EVENTS_KEY, 0, -1)]
        if instance_id:
            events = [e for e in events if e["instance_id"] == instance_id]
        if event_type:
            events = [e for e in events if e["event_type"] == event_type]
        return events

    async def get_events(
        self,
        limit: int = 50,
        offset: int = 0,
        instance_id: str | None = None,
        event_type: str | None = None,
    ) -> tuple[list[dict], int]:
        """Newest-first page of events and the filtered total."""
        events = await self._load(instance_id, event_type)
        return events[offset : offset + limit], len(events)

    async def clear_events(self) -> None:
        await self.redis.delete(self.EVENTS_KEY)
