"""Clinic repository."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_inbox.db.repositories.base import BaseRepository
from clinic_inbox.models import Clinic


class ClinicRepository(BaseRepository[Clinic]):
    """Repository for clinic lookups by provider instance."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Clinic)

    async def get_by_instance_id(self, instance_id: str | int | None) -> Clinic | None:
        """Get the clinic that owns a Green API instance.

        The provider sends the instance id as a number; it is stored as text.
        """
        if instance_id is None or str(instance_id) == "":
            return None
        stmt = select(Clinic).where(Clinic.whatsapp_instance_id == str(instance_id))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_with_active_provider(self) -> list[Clinic]:
        """Clinics whose WhatsApp connection is configured, enabled and authorized."""
        stmt = select(Clinic).where(
            Clinic.whatsapp_instance_id.is_not(None),
            Clinic.whatsapp_api_token.is_not(None),
            Clinic.whatsapp_enabled.is_(True),
            Clinic.whatsapp_authorized.is_(True),
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def set_authorized(
        self, clinic: Clinic, authorized: bool, phone: str | None = None
    ) -> Clinic:
        """Persist the result of a provider state check."""
        fields: dict = {"whatsapp_authorized": authorized}
        if phone:
            fields["whatsapp_phone"] = phone
        return await self.update(clinic, **fields)
