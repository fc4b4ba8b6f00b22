"""Client model (read-only here; owned by the records layer)."""

from uuid import UUID, uuid4

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic_inbox.db.base import Base
from clinic_inbox.models.base import TimestampMixin


class Client(Base, TimestampMixin):
    """A known clinic client."""

    __tablename__ = "clients"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    clinic_id: Mapped[UUID] = mapped_column(ForeignKey("clinics.id"), nullable=False)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), default="")
    phone_primary: Mapped[str | None] = mapped_column(String(32))
    phone_secondary: Mapped[str | None] = mapped_column(String(32))
    status: Mapped[str] = mapped_column(String(20), default="active")  # active, inactive

    clinic: Mapped["Clinic"] = relationship(back_populates="clients")  # noqa: F821

    __table_args__ = (
        Index("ix_clients_clinic_status", "clinic_id", "status"),
        Index("ix_clients_phone_primary", "phone_primary"),
    )
