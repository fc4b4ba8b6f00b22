"""Outbound sends with optimistic display."""

import asyncio
import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from clinic_inbox.config import settings
from clinic_inbox.core.exceptions import GreenApiError
from clinic_inbox.core.phone import to_chat_id
from clinic_inbox.core.telemetry import get_tracer
from clinic_inbox.db.repositories import MessageRepository
from clinic_inbox.models import Clinic
from clinic_inbox.models.message import MessageDirection
from clinic_inbox.schemas.message import MessageRecord, SendResult
from clinic_inbox.services.conversation_view import ConversationView
from clinic_inbox.services.green_api_client import GreenApiClient, GreenApiConfig
from clinic_inbox.services.ingestion import resolve_links
from clinic_inbox.services.realtime import RealtimePublisher

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

NOT_CONFIGURED = "WhatsApp is not configured or not enabled"


class OutboundSendCoordinator:
    """Sends one text for a clinic and keeps its conversation view in step.

    The placeholder shown while the provider call is in flight is either
    confirmed with the provider id or removed, never both.
    """

    def __init__(
        self,
        session: AsyncSession,
        clinic: Clinic,
        view: ConversationView | None = None,
        publisher: RealtimePublisher | None = None,
        client: GreenApiClient | None = None,
    ):
        self.session = session
        self.clinic = clinic
        self.view = view
        self.publisher = publisher
        self.config = GreenApiConfig.from_clinic(clinic)
        self.client = client or GreenApiClient(self.config)
        self.refresh_task: asyncio.Task | None = None

    async def send(
        self,
        phone: str,
        text: str,
        client_id: UUID | None = None,
        lead_id: UUID | None = None,
    ) -> SendResult:
        if not self.config.can_send:
            return SendResult(success=False, error=NOT_CONFIGURED, restored_text=text)

        placeholder = None
        if self.view is not None:
            placeholder = self.view.add_optimistic(
                phone,
                text,
                client_id=str(client_id) if client_id else None,
                lead_id=str(lead_id) if lead_id else None,
            )

        try:
            with tracer.start_as_current_span("green_api_send_text"):
                provider_message_id = await self.client.send_text(to_chat_id(phone), text)
        except GreenApiError as e:
            if placeholder is not None:
                self.view.remove_optimistic(placeholder.id)
            logger.warning(f"Send to {phone} failed for clinic {self.clinic.id}: {e.detail}")
            return SendResult(success=False, error=e.detail, restored_text=text)
        except BaseException:
            if placeholder is not None:
                self.view.remove_optimistic(placeholder.id)
            raise

        if placeholder is not None:
            self.view.confirm_optimistic(placeholder.id, provider_message_id)

        await self._log_sent(phone, text, provider_message_id, client_id, lead_id)

        if self.view is not None:
            self.refresh_task = asyncio.create_task(self._refresh_later())

        return SendResult(success=True, message_id=provider_message_id)

    async def _log_sent(
        self,
        phone: str,
        text: str,
        provider_message_id: str,
        client_id: UUID | None,
        lead_id: UUID | None,
    ) -> None:
        """Persist the sent message. The send already happened, so failures only log."""
        try:
            if not client_id and not lead_id:
                client_id, lead_id = await resolve_links(self.session, self.clinic.id, phone)
            elif client_id:
                lead_id = None

            message = await MessageRepository(self.session).insert_if_absent(
                clinic_id=self.clinic.id,
                client_id=client_id,
                lead_id=lead_id,
                direction=MessageDirection.OUTBOUND,
                content=text,
                recipient_phone=phone,
                provider_message_id=provider_message_id,
                status="sent",
            )
        except Exception as e:
            logger.error(f"Failed to store sent message {provider_message_id}: {e}")
            return

        if message is not None and self.publisher:
            await self.publisher.publish(MessageRecord.from_orm_message(message, contact_phone=phone))

    async def _refresh_later(self) -> None:
        await asyncio.sleep(settings.SEND_REFRESH_DELAY_SECONDS)
        try:
            await self.view.refresh()
        except Exception as e:
            logger.error(f"Failed to refresh conversations after send: {e}")
