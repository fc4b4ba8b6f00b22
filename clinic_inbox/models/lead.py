"""Lead model for prospective clients."""

from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic_inbox.db.base import Base
from clinic_inbox.models.base import TimestampMixin


class LeadStatus(str, Enum):
    """Lead pipeline status."""

    NEW = "new"
    CONTACTED = "contacted"
    CONVERTED = "converted"
    LOST = "lost"


class Lead(Base, TimestampMixin):
    """An open lead. Converted leads are superseded by their client."""

    __tablename__ = "leads"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    clinic_id: Mapped[UUID] = mapped_column(ForeignKey("clinics.id"), nullable=False)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str | None] = mapped_column(String(100))
    phone: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=LeadStatus.NEW.value)

    clinic: Mapped["Clinic"] = relationship(back_populates="leads")  # noqa: F821

    __table_args__ = (
        Index("ix_leads_clinic_status", "clinic_id", "status"),
        Index("ix_leads_phone", "phone"),
    )
