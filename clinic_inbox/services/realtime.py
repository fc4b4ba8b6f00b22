"""Realtime fan-out of stored messages over Redis pub/sub."""

import asyncio
import logging
from uuid import UUID

from pydantic import ValidationError
from redis.asyncio import Redis

from clinic_inbox.config import settings
from clinic_inbox.schemas.message import MessageRecord

logger = logging.getLogger(__name__)


def clinic_channel(clinic_id: UUID | str) -> str:
    return f"{settings.REALTIME_CHANNEL_PREFIX}:{clinic_id}"


def contact_channel(clinic_id: UUID | str, kind: str, contact_id: UUID | str) -> str:
    """Channel of a single client or lead thread (``kind`` is client or lead)."""
    return f"{clinic_channel(clinic_id)}:{kind}:{contact_id}"


class RealtimePublisher:
    """Publishes every newly stored row to its clinic and contact channels."""

    def __init__(self, redis: Redis):
        self.redis = redis

    def channels_for(self, record: MessageRecord) -> list[str]:
        channels = [clinic_channel(record.clinic_id)]
        if record.client_id:
            channels.append(contact_channel(record.clinic_id, "client", record.client_id))
        elif record.lead_id:
            channels.append(contact_channel(record.clinic_id, "lead", record.lead_id))
        return channels

    async def publish(self, record: MessageRecord) -> int:
        """Publish a row; returns the number of channels it went to.

        Realtime delivery is best-effort: a Redis failure is logged and the
        stored row stays authoritative.
        """
        payload = record.model_dump_json()
        sent = 0
        for channel in self.channels_for(record):
            try:
                await self.redis.publish(channel, payload)
                sent += 1
            except Exception as e:
                logger.warning(f"Failed to publish message {record.id} to {channel}: {e}")
        return sent


class RealtimeMergeListener:
    """Subscribes a ``ConversationView`` to its clinic's (or contact's) channel.

    ``contact`` narrows the subscription to one thread, e.g. ``("client", id)``.
    """

    def __init__(
        self,
        redis: Redis,
        view,
        clinic_id: UUID | str,
        contact: tuple[str, UUID | str] | None = None,
    ):
        self.redis = redis
        self.view = view
        self.clinic_id = str(clinic_id)
        self.channel = (
            contact_channel(clinic_id, *contact) if contact else clinic_channel(clinic_id)
        )
        self.pubsub = None
        self.task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self.task is not None and not self.task.done()

    async def start(self) -> None:
        if self.running:
            return
        self.pubsub = self.redis.pubsub()
        await self.pubsub.subscribe(self.channel)
        self.task = asyncio.create_task(self._listen())
        logger.info(f"Realtime listener subscribed to {self.channel}")

    async def stop(self) -> None:
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
            self.task = None

        if self.pubsub is not None:
            await self.pubsub.unsubscribe(self.channel)
            await self.pubsub.aclose()
            self.pubsub = None
            logger.info(f"Realtime listener unsubscribed from {self.channel}")

    def handle_payload(self, data: str | bytes) -> bool:
        """Decode one published row and merge it into the view."""
        try:
            record = MessageRecord.model_validate_json(data)
        except ValidationError as e:
            logger.warning(f"Invalid realtime payload on {self.channel}: {e}")
            return False
        return self.view.merge_message(record)

    async def _listen(self) -> None:
        async for message in self.pubsub.listen():
            if message.get("type") != "message":
                continue
            try:
                self.handle_payload(message["data"])
            except Exception as e:
                logger.error(f"Error merging realtime message on {self.channel}: {e}")
