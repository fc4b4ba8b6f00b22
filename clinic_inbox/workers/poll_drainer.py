"""Notification queue poller for Green API instances.

The webhook is the fast path; this worker drains each authorized instance's
notification queue so nothing the webhook missed is lost. Both paths go
through the same ``InboundMessageProcessor``, so a message delivered twice is
stored once.
"""

import asyncio
import inspect
import logging
from collections.abc import Callable
from uuid import UUID

from pydantic import ValidationError
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clinic_inbox.config import settings
from clinic_inbox.core.exceptions import GreenApiError
from clinic_inbox.db.session import async_session_maker, close_db
from clinic_inbox.schemas.notification import Notification, extract_inbound_text
from clinic_inbox.services.green_api_client import GreenApiClient, GreenApiConfig
from clinic_inbox.services.ingestion import IngestOutcome, InboundMessageProcessor
from clinic_inbox.services.realtime import RealtimePublisher

logger = logging.getLogger(__name__)


class PollDrainer:
    """Drains the notification queue of one clinic's instance."""

    def __init__(
        self,
        clinic_id: UUID,
        config: GreenApiConfig,
        client: GreenApiClient | None = None,
        session_factory: async_sessionmaker[AsyncSession] = async_session_maker,
        publisher: RealtimePublisher | None = None,
        interval: float | None = None,
        max_iterations: int | None = None,
        on_new_message: Callable[[IngestOutcome], object] | None = None,
    ):
        self.clinic_id = clinic_id
        self.config = config
        self.client = client or GreenApiClient(config)
        self.session_factory = session_factory
        self.publisher = publisher
        self.interval = interval if interval is not None else settings.POLL_INTERVAL_SECONDS
        self.max_iterations = max_iterations or settings.POLL_MAX_ITERATIONS
        self.on_new_message = on_new_message

        self.task: asyncio.Task | None = None
        self._draining = False
        self._stopping = False
        self._wakeup = asyncio.Event()

    @property
    def running(self) -> bool:
        return self.task is not None and not self.task.done()

    def start(self) -> bool:
        """Drain now and then every ``interval`` seconds. Returns False if not startable."""
        if self.running:
            return True
        if not self.config.can_poll:
            logger.info(f"Polling not started for clinic {self.clinic_id}: provider not ready")
            return False

        self._stopping = False
        self._wakeup.clear()
        self.task = asyncio.create_task(self._run())
        logger.info(f"Started notification polling for clinic {self.clinic_id}")
        return True

    async def stop(self) -> None:
        """Stop the interval. A receive/delete pair already in flight completes."""
        self._stopping = True
        self._wakeup.set()
        if self.task:
            await self.task
            self.task = None
            logger.info(f"Stopped notification polling for clinic {self.clinic_id}")

    async def _run(self) -> None:
        while not self._stopping:
            try:
                await self.drain()
            except Exception as e:
                logger.error(f"Unexpected error draining queue for clinic {self.clinic_id}: {e}")

            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

    async def drain(self) -> int:
        """Run one drain cycle; returns the number of newly stored messages.

        Returns 0 immediately if a cycle is already running.
        """
        if self._draining:
            return 0

        self._draining = True
        stored = 0
        try:
            for _ in range(self.max_iterations):
                if self._stopping:
                    break

                try:
                    item = await self.client.receive_notification()
                except GreenApiError as e:
                    logger.error(f"receiveNotification failed for clinic {self.clinic_id}: {e.detail}")
                    break
                except ValidationError as e:
                    logger.error(f"Unreadable queue item for clinic {self.clinic_id}: {e}")
                    break
                if item is None:
                    break

                try:
                    if await self._process(item.notification()):
                        stored += 1
                except Exception as e:
                    logger.error(f"Failed to process notification {item.receipt_id}: {e}")
                finally:
                    await self._delete(item.receipt_id)
        finally:
            self._draining = False

        if stored:
            logger.info(f"Stored {stored} message(s) from queue for clinic {self.clinic_id}")
        return stored

    async def _delete(self, receipt_id: int) -> None:
        try:
            await self.client.delete_notification(receipt_id)
        except GreenApiError as e:
            logger.warning(f"deleteNotification {receipt_id} failed for clinic {self.clinic_id}: {e.detail}")

    async def _process(self, notification: Notification) -> bool:
        inbound = extract_inbound_text(notification)
        if inbound is None:
            return False

        async with self.session_factory() as session:
            processor = InboundMessageProcessor(session, self.clinic_id, publisher=self.publisher)
            outcome = await processor.process(inbound)

        if outcome.stored and self.on_new_message:
            result = self.on_new_message(outcome)
            if inspect.isawaitable(result):
                await result
        return outcome.stored


class PollingManager:
    """Runs one drainer per clinic with an active provider connection."""

    def __init__(self, publisher: RealtimePublisher | None = None):
        self.publisher = publisher
        self.drainers: dict[UUID, PollDrainer] = {}
        self.refresh_interval = settings.POLL_CLINIC_REFRESH_SECONDS

    async def load_clinics(self) -> dict[UUID, GreenApiConfig]:
        """Load clinics whose provider is configured, enabled and authorized."""
        async with async_session_maker() as db:
            from clinic_inbox.db.repositories import ClinicRepository

            clinics = await ClinicRepository(db).list_with_active_provider()
            return {clinic.id: GreenApiConfig.from_clinic(clinic) for clinic in clinics}

    def add_clinic(self, clinic_id: UUID, config: GreenApiConfig) -> None:
        if clinic_id in self.drainers:
            return
        drainer = PollDrainer(clinic_id, config, publisher=self.publisher)
        if drainer.start():
            self.drainers[clinic_id] = drainer

    async def remove_clinic(self, clinic_id: UUID) -> None:
        drainer = self.drainers.pop(clinic_id, None)
        if drainer:
            await drainer.stop()

    async def sync(self) -> None:
        """Start drainers for new clinics, stop them for ones that dropped out."""
        clinics = await self.load_clinics()

        for clinic_id, config in clinics.items():
            current = self.drainers.get(clinic_id)
            if current and current.config != config:
                await self.remove_clinic(clinic_id)
            self.add_clinic(clinic_id, config)

        for clinic_id in set(self.drainers) - set(clinics):
            await self.remove_clinic(clinic_id)

    async def run(self) -> None:
        logger.info("Starting notification polling manager...")
        try:
            while True:
                try:
                    await self.sync()
                except Exception as e:
                    logger.error(f"Error refreshing clinics: {e}")
                await asyncio.sleep(self.refresh_interval)
        finally:
            await self.close()

    async def close(self) -> None:
        for clinic_id in list(self.drainers):
            await self.remove_clinic(clinic_id)


async def main() -> None:
    """Main entry point for the notification polling worker."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    redis = Redis.from_url(settings.REDIS_URL, decode_responses=True)
    manager = PollingManager(publisher=RealtimePublisher(redis))

    try:
        await manager.run()
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Shutting down notification poller...")
    finally:
        await manager.close()
        await redis.aclose()
        await close_db()


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
