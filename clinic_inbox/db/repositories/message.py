"""Message repository: the idempotent message store."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from clinic_inbox.db.repositories.base import BaseRepository
from clinic_inbox.models import WhatsAppMessage

logger = logging.getLogger(__name__)


class MessageRepository(BaseRepository[WhatsAppMessage]):
    """Repository for message operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, WhatsAppMessage)

    async def get_by_provider_id(
        self, clinic_id: UUID, provider_message_id: str
    ) -> WhatsAppMessage | None:
        """Get message by Green API message ID within a clinic."""
        stmt = select(WhatsAppMessage).where(
            WhatsAppMessage.clinic_id == clinic_id,
            WhatsAppMessage.provider_message_id == provider_message_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def insert_if_absent(self, **kwargs) -> WhatsAppMessage | None:
        """Insert a message unless its provider id is already stored.

        Returns the new row, or None when the message is a duplicate. Two
        producers racing on the same id are settled by the unique constraint.
        """
        clinic_id = kwargs["clinic_id"]
        provider_message_id = kwargs.get("provider_message_id")

        if provider_message_id:
            existing = await self.get_by_provider_id(clinic_id, provider_message_id)
            if existing:
                return None

        try:
            return await self.create(**kwargs)
        except IntegrityError:
            await self.session.rollback()
            logger.info(f"Message {provider_message_id} inserted concurrently, skipping")
            return None

    async def list_for_clinic(self, clinic_id: UUID) -> list[WhatsAppMessage]:
        """All messages of a clinic with linked client and lead loaded, newest first."""
        stmt = (
            select(WhatsAppMessage)
            .where(WhatsAppMessage.clinic_id == clinic_id)
            .options(
                selectinload(WhatsAppMessage.client),
                selectinload(WhatsAppMessage.lead),
            )
            .order_by(WhatsAppMessage.sent_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_contact(
        self,
        clinic_id: UUID,
        *,
        client_id: UUID | None = None,
        lead_id: UUID | None = None,
    ) -> list[WhatsAppMessage]:
        """Messages linked to one client or lead, oldest first."""
        stmt = (
            select(WhatsAppMessage)
            .where(WhatsAppMessage.clinic_id == clinic_id)
            .options(
                selectinload(WhatsAppMessage.client),
                selectinload(WhatsAppMessage.lead),
            )
            .order_by(WhatsAppMessage.sent_at)
        )
        if client_id:
            stmt = stmt.where(WhatsAppMessage.client_id == client_id)
        if lead_id:
            stmt = stmt.where(WhatsAppMessage.lead_id == lead_id)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())
