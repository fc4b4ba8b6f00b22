"""Clinic model: the tenant that owns a WhatsApp connection."""

from uuid import UUID, uuid4

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic_inbox.db.base import Base
from clinic_inbox.models.base import TimestampMixin


class Clinic(Base, TimestampMixin):
    """Represents a clinic and its Green API instance credentials."""

    __tablename__ = "clinics"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    whatsapp_instance_id: Mapped[str | None] = mapped_column(String(50), unique=True)
    whatsapp_api_token: Mapped[str | None] = mapped_column(String(255))
    whatsapp_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    whatsapp_authorized: Mapped[bool] = mapped_column(Boolean, default=False)
    whatsapp_phone: Mapped[str | None] = mapped_column(String(20))

    # Relationships
    clients: Mapped[list["Client"]] = relationship(  # noqa: F821
        back_populates="clinic", cascade="all, delete-orphan"
    )
    leads: Mapped[list["Lead"]] = relationship(  # noqa: F821
        back_populates="clinic", cascade="all, delete-orphan"
    )
    messages: Mapped[list["WhatsAppMessage"]] = relationship(  # noqa: F821
        back_populates="clinic", cascade="all, delete-orphan"
    )
