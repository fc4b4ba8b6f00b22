"""Lead repository (identity source for open leads)."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_inbox.core.phone import phone_suffix
from clinic_inbox.db.repositories.base import BaseRepository
from clinic_inbox.models import Lead, LeadStatus


class LeadRepository(BaseRepository[Lead]):
    """Read-only queries over leads. Converted leads are never returned."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Lead)

    async def list_open(self, clinic_id: UUID) -> list[Lead]:
        """Non-converted leads of a clinic."""
        stmt = (
            select(Lead)
            .where(Lead.clinic_id == clinic_id, Lead.status != LeadStatus.CONVERTED.value)
            .order_by(Lead.created_at, Lead.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_by_phone_suffix(self, clinic_id: UUID, phone: str) -> Lead | None:
        """Widened match on the last digits of the lead phone."""
        suffix = phone_suffix(phone)
        if not suffix:
            return None

        stmt = (
            select(Lead)
            .where(
                Lead.clinic_id == clinic_id,
                Lead.status != LeadStatus.CONVERTED.value,
                Lead.phone.like(f"%{suffix}%"),
            )
            .order_by(Lead.created_at, Lead.id)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()
