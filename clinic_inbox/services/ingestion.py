"""Inbound message processing shared by the webhook and the poller."""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from clinic_inbox.core.telemetry import get_tracer
from clinic_inbox.db.repositories import ClientRepository, LeadRepository, MessageRepository
from clinic_inbox.models import WhatsAppMessage
from clinic_inbox.models.message import MessageDirection
from clinic_inbox.schemas.message import MessageRecord
from clinic_inbox.schemas.notification import InboundText
from clinic_inbox.services.realtime import RealtimePublisher

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

STORED = "stored"
DUPLICATE = "duplicate"


@dataclass
class IngestOutcome:
    """What happened to one inbound text."""

    status: str
    message: WhatsAppMessage | None = None
    client_id: UUID | None = None
    lead_id: UUID | None = None

    @property
    def stored(self) -> bool:
        return self.status == STORED


async def resolve_links(
    session: AsyncSession, clinic_id: UUID, phone: str
) -> tuple[UUID | None, UUID | None]:
    """Widened identity match; a client match wins and leaves the lead unset."""
    client = await ClientRepository(session).find_by_phone_suffix(clinic_id, phone)
    if client:
        return client.id, None

    lead = await LeadRepository(session).find_by_phone_suffix(clinic_id, phone)
    if lead:
        return None, lead.id
    return None, None


class InboundMessageProcessor:
    """Stores an inbound text for one clinic exactly once."""

    def __init__(
        self,
        session: AsyncSession,
        clinic_id: UUID,
        publisher: RealtimePublisher | None = None,
    ):
        self.session = session
        self.clinic_id = clinic_id
        self.publisher = publisher
        self.message_repo = MessageRepository(session)

    async def process(self, inbound: InboundText) -> IngestOutcome:
        with tracer.start_as_current_span("ingest_inbound_message") as span:
            span.set_attribute("clinic.id", str(self.clinic_id))
            span.set_attribute("message.provider_id", inbound.provider_message_id or "")
            outcome = await self._process(inbound)
            span.set_attribute("ingest.status", outcome.status)
            return outcome

    async def _process(self, inbound: InboundText) -> IngestOutcome:
        if inbound.provider_message_id:
            existing = await self.message_repo.get_by_provider_id(
                self.clinic_id, inbound.provider_message_id
            )
            if existing:
                logger.debug(f"Message {inbound.provider_message_id} already stored, skipping")
                return IngestOutcome(
                    status=DUPLICATE,
                    client_id=existing.client_id,
                    lead_id=existing.lead_id,
                )

        client_id, lead_id = await resolve_links(self.session, self.clinic_id, inbound.sender_phone)

        message = await self.message_repo.insert_if_absent(
            clinic_id=self.clinic_id,
            client_id=client_id,
            lead_id=lead_id,
            direction=MessageDirection.INBOUND,
            content=inbound.text,
            sender_phone=inbound.sender_phone,
            sender_name=inbound.sender_name,
            provider_message_id=inbound.provider_message_id,
            status="received",
            sent_at=inbound.sent_at,
        )
        if message is None:
            return IngestOutcome(status=DUPLICATE, client_id=client_id, lead_id=lead_id)

        logger.info(
            f"Stored inbound message {inbound.provider_message_id} for clinic {self.clinic_id} "
            f"(client: {client_id}, lead: {lead_id})"
        )

        if self.publisher:
            await self.publisher.publish(
                MessageRecord.from_orm_message(message, contact_phone=inbound.sender_phone)
            )

        return IngestOutcome(status=STORED, message=message, client_id=client_id, lead_id=lead_id)
