"""Client repository (identity source for known clients)."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_inbox.core.phone import phone_suffix
from clinic_inbox.db.repositories.base import BaseRepository
from clinic_inbox.models import Client


class ClientRepository(BaseRepository[Client]):
    """Read-only queries over clients."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Client)

    async def list_active(self, clinic_id: UUID) -> list[Client]:
        """Active clients of a clinic."""
        stmt = (
            select(Client)
            .where(Client.clinic_id == clinic_id, Client.status == "active")
            .order_by(Client.created_at, Client.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_by_phone_suffix(self, clinic_id: UUID, phone: str) -> Client | None:
        """Widened match on the last digits of either phone column.

        The stored phones are free-form text, so the query cannot apply the
        normalizer; a substring match on the trailing digits is used instead.
        The first hit is best-effort, not an authoritative identity.
        """
        suffix = phone_suffix(phone)
        if not suffix:
            return None

        pattern = f"%{suffix}%"
        stmt = (
            select(Client)
            .where(
                Client.clinic_id == clinic_id,
                Client.status == "active",
                or_(
                    Client.phone_primary.like(pattern),
                    Client.phone_secondary.like(pattern),
                ),
            )
            .order_by(Client.created_at, Client.id)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()
