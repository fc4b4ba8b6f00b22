"""Debug endpoints for viewing webhook deliveries."""

from fastapi import APIRouter, Query

from clinic_inbox.api.deps import RedisClient
from clinic_inbox.services import WebhookEventStore

router = APIRouter(prefix="/debug", tags=["debug"])


@router.get("/webhooks")
async def list_webhook_events(
    redis: RedisClient,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    instance_id: str | None = None,
    event_type: str | None = None,
):
    """List recent webhook deliveries, newest first."""
    events, total = await WebhookEventStore(redis).get_events(
        limit=limit,
        offset=skip,
        instance_id=instance_id,
        event_type=event_type,
    )
    return {"items": events, "total": total, "skip": skip, "limit": limit}


@router.delete("/webhooks")
async def clear_webhook_events(redis: RedisClient):
    """Clear all stored webhook deliveries."""
    await WebhookEventStore(redis).clear_events()
    return {"status": "cleared"}
