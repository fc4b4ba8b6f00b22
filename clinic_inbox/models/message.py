"""WhatsApp message model."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic_inbox.db.base import Base
from clinic_inbox.models.base import TimestampMixin, utcnow


class MessageDirection(str, Enum):
    """Message direction enum.

    Older rows and the provider history API spell the directions
    "incoming"/"outgoing"; both spellings parse to the same two members.
    """

    INBOUND = "inbound"
    OUTBOUND = "outbound"

    @classmethod
    def _missing_(cls, value):
        if not isinstance(value, str):
            return None
        value = value.strip().lower()
        if value in ("inbound", "incoming"):
            return cls.INBOUND
        if value in ("outbound", "outgoing"):
            return cls.OUTBOUND
        return None


class WhatsAppMessage(Base, TimestampMixin):
    """A stored inbound or outbound WhatsApp text message."""

    __tablename__ = "whatsapp_messages"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    clinic_id: Mapped[UUID] = mapped_column(ForeignKey("clinics.id"), nullable=False)
    client_id: Mapped[UUID | None] = mapped_column(ForeignKey("clients.id"))
    lead_id: Mapped[UUID | None] = mapped_column(ForeignKey("leads.id"))

    direction: Mapped[MessageDirection] = mapped_column(
        SQLEnum(
            MessageDirection,
            name="message_direction",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)

    # Set for inbound messages; the only phone an unknown sender has
    sender_phone: Mapped[str | None] = mapped_column(String(32))
    sender_name: Mapped[str | None] = mapped_column(String(255))

    # Set for outbound messages; keeps sends to unknown numbers attributable
    recipient_phone: Mapped[str | None] = mapped_column(String(32))

    # Dedup key; NULL on legacy rows
    provider_message_id: Mapped[str | None] = mapped_column(String(100))
    status: Mapped[str | None] = mapped_column(String(20))  # received, sent

    # Ordering timestamp, distinct from created_at
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    # Relationships
    clinic: Mapped["Clinic"] = relationship(back_populates="messages")  # noqa: F821
    client: Mapped["Client | None"] = relationship()  # noqa: F821
    lead: Mapped["Lead | None"] = relationship()  # noqa: F821

    __table_args__ = (
        UniqueConstraint(
            "clinic_id", "provider_message_id", name="uq_whatsapp_messages_provider_id"
        ),
        Index("ix_whatsapp_messages_clinic_sent_at", "clinic_id", "sent_at"),
        Index("ix_whatsapp_messages_client", "client_id"),
        Index("ix_whatsapp_messages_lead", "lead_id"),
    )
