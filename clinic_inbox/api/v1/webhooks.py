"""Webhook endpoint for Green API notifications."""

import json
import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from clinic_inbox.api.deps import DbSession, RedisClient, WebhookRateLimiter, client_ip
from clinic_inbox.services.realtime import RealtimePublisher
from clinic_inbox.services.webhook_event_store import WebhookEventStore
from clinic_inbox.services.webhook_receiver import WebhookReceiver

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
logger = logging.getLogger(__name__)


@router.post("/green-api")
async def green_api_webhook(
    request: Request,
    db: DbSession,
    redis: RedisClient,
    limiter: WebhookRateLimiter,
):
    """Receive a Green API notification.

    Every handled body gets a 200 so the provider does not retry; only rate
    limiting (429) and an unreadable body (500) are reported as errors.
    """
    if not limiter.allow(client_ip(request)):
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"error": "Too many requests"},
        )

    try:
        body = json.loads(await request.body())
    except (ValueError, UnicodeDecodeError) as e:
        logger.warning(f"Unreadable webhook body: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Invalid JSON body"},
        )
    if not isinstance(body, dict):
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Webhook body must be a JSON object"},
        )

    receiver = WebhookReceiver(
        db,
        publisher=RealtimePublisher(redis),
        event_store=WebhookEventStore(redis),
    )
    return await receiver.handle(body)
