"""Green API webhook handling."""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from clinic_inbox.db.repositories import ClinicRepository
from clinic_inbox.schemas.notification import (
    INCOMING_MESSAGE_RECEIVED,
    extract_inbound_text,
    parse_notification,
)
from clinic_inbox.services.ingestion import InboundMessageProcessor
from clinic_inbox.services.realtime import RealtimePublisher
from clinic_inbox.services.webhook_event_store import WebhookEventStore

logger = logging.getLogger(__name__)


class WebhookReceiver:
    """Turns one webhook body into at most one stored message.

    ``handle`` never raises: the provider retries on anything but a 2xx, and
    the poller is the recovery path for deliveries that fail here.
    """

    def __init__(
        self,
        session: AsyncSession,
        publisher: RealtimePublisher | None = None,
        event_store: WebhookEventStore | None = None,
    ):
        self.session = session
        self.publisher = publisher
        self.event_store = event_store

    async def _record(self, body: dict[str, Any]) -> str | None:
        if not self.event_store:
            return None
        try:
            instance = (body.get("instanceData") or {}).get("idInstance")
            return await self.event_store.store_event(
                instance_id=str(instance) if instance is not None else None,
                event_type=body.get("typeWebhook"),
                payload=body,
            )
        except Exception as e:
            logger.warning(f"Failed to store webhook event: {e}")
            return None

    async def _finish(self, event_id: str | None, result: dict, error: str | None = None) -> dict:
        if self.event_store and event_id:
            try:
                await self.event_store.update_status(event_id, result["status"], error)
            except Exception as e:
                logger.warning(f"Failed to update webhook event {event_id}: {e}")
        return result

    async def handle(self, body: dict[str, Any]) -> dict[str, Any]:
        event_id = await self._record(body)
        try:
            return await self._finish(event_id, await self._handle(body))
        except Exception as e:
            logger.exception(f"Error processing Green API webhook: {e}")
            return await self._finish(event_id, {"status": "accepted"}, str(e))

    async def _handle(self, body: dict[str, Any]) -> dict[str, Any]:
        notification = parse_notification(body)
        if notification.type_webhook != INCOMING_MESSAGE_RECEIVED:
            logger.debug(f"Ignoring webhook of type {notification.type_webhook}")
            return {"status": "ignored", "type": notification.type_webhook}

        inbound = extract_inbound_text(notification)
        if inbound is None or not inbound.instance_id:
            return {"status": "missing data"}

        clinic = await ClinicRepository(self.session).get_by_instance_id(inbound.instance_id)
        if clinic is None:
            logger.warning(f"No clinic found for Green API instance {inbound.instance_id}")
            return {"status": "no clinic found"}

        processor = InboundMessageProcessor(self.session, clinic.id, publisher=self.publisher)
        outcome = await processor.process(inbound)
        if not outcome.stored:
            return {"status": "duplicate"}

        return {
            "status": "success",
            "clinicId": str(clinic.id),
            "clientId": str(outcome.client_id) if outcome.client_id else None,
            "leadId": str(outcome.lead_id) if outcome.lead_id else None,
            "messageId": str(outcome.message.id),
        }
