"""Message schemas."""

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import inspect

from clinic_inbox.core.phone import is_group_chat, phone_from_chat_id
from clinic_inbox.models import WhatsAppMessage
from clinic_inbox.models.message import MessageDirection
from clinic_inbox.schemas.notification import timestamp_to_datetime


class MessageRecord(BaseModel):
    """A message as the conversation view sees it.

    Built from stored rows, from provider history items, or locally for an
    optimistic send. ``contact_phone`` is the phone of the other party when it
    is known without looking at ``sender_phone`` (linked identity or chat).
    """

    model_config = ConfigDict(frozen=True)

    id: str
    clinic_id: str | None = None
    direction: MessageDirection
    content: str = ""
    sender_phone: str | None = None
    sender_name: str | None = None
    client_id: str | None = None
    lead_id: str | None = None
    provider_message_id: str | None = None
    contact_phone: str | None = None
    sent_at: datetime
    pending: bool = False

    @field_validator("sent_at")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        # SQLite hands back naive datetimes
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def dedup_key(self) -> str:
        return self.provider_message_id or self.id

    @classmethod
    def from_orm_message(
        cls, message: WhatsAppMessage, contact_phone: str | None = None
    ) -> "MessageRecord":
        """Convert a stored row; linked client/lead are read only if already loaded."""
        if contact_phone is None:
            unloaded = inspect(message).unloaded
            client = message.client if "client" not in unloaded else None
            lead = message.lead if "lead" not in unloaded else None
            if client is not None:
                contact_phone = client.phone_primary or client.phone_secondary
            elif lead is not None:
                contact_phone = lead.phone
        contact_phone = contact_phone or message.recipient_phone

        return cls(
            id=str(message.id),
            clinic_id=str(message.clinic_id),
            direction=message.direction,
            content=message.content or "",
            sender_phone=message.sender_phone,
            sender_name=message.sender_name,
            client_id=_str_or_none(message.client_id),
            lead_id=_str_or_none(message.lead_id),
            provider_message_id=message.provider_message_id,
            contact_phone=contact_phone,
            sent_at=message.sent_at,
        )

    @classmethod
    def from_provider_message(
        cls, item: dict[str, Any], clinic_id: str | None = None
    ) -> "MessageRecord | None":
        """Convert a lastIncomingMessages/lastOutgoingMessages item.

        Group chats and items without a chat or id are skipped (None).
        """
        chat_id = item.get("chatId")
        message_id = item.get("idMessage")
        if not chat_id or not message_id or is_group_chat(chat_id):
            return None

        direction = MessageDirection(item.get("type") or "incoming")
        phone = phone_from_chat_id(chat_id)
        extended = item.get("extendedTextMessage") or item.get("extendedTextMessageData") or {}
        content = item.get("textMessage") or extended.get("text") or item.get("caption") or ""

        return cls(
            id=message_id,
            clinic_id=clinic_id,
            direction=direction,
            content=content,
            sender_phone=phone if direction == MessageDirection.INBOUND else None,
            sender_name=item.get("senderName"),
            provider_message_id=message_id,
            contact_phone=phone,
            sent_at=timestamp_to_datetime(item.get("timestamp")),
        )


def _str_or_none(value: UUID | str | None) -> str | None:
    return str(value) if value is not None else None


class MessageSend(BaseModel):
    """Schema for sending a new message."""

    phone: str = Field(..., min_length=1, description="Phone number to send to")
    content: str = Field(..., min_length=1, description="Message text")
    client_id: UUID | None = Field(None, description="Client the message is addressed to")
    lead_id: UUID | None = Field(None, description="Lead the message is addressed to")


class SendResult(BaseModel):
    """Outcome of an outbound send.

    On failure ``restored_text`` carries the caller's input so it can be
    offered again for retry.
    """

    success: bool
    message_id: str | None = None
    error: str | None = None
    restored_text: str | None = None
