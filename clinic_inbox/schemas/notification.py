"""Green API notification payloads.

Webhook deliveries and queue items carry the same body. Only the
"incoming message" event with a text or extended-text message is turned into
an ``InboundText``; everything else is provider housekeeping and is dropped.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from clinic_inbox.core.phone import is_group_chat, phone_from_chat_id

INCOMING_MESSAGE_RECEIVED = "incomingMessageReceived"


class _ProviderModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class InstanceData(_ProviderModel):
    id_instance: int | str | None = Field(None, alias="idInstance")
    wid: str | None = None
    type_instance: str | None = Field(None, alias="typeInstance")


class SenderData(_ProviderModel):
    chat_id: str | None = Field(None, alias="chatId")
    sender: str | None = None
    sender_name: str | None = Field(None, alias="senderName")


class TextMessageData(_ProviderModel):
    text_message: str | None = Field(None, alias="textMessage")


class ExtendedTextMessageData(_ProviderModel):
    text: str | None = None


class MessageData(_ProviderModel):
    """Message part of a notification: text, extended text, or anything else."""

    type_message: str | None = Field(None, alias="typeMessage")
    text_message_data: TextMessageData | None = Field(None, alias="textMessageData")
    extended_text_message_data: ExtendedTextMessageData | None = Field(
        None, alias="extendedTextMessageData"
    )

    @property
    def text(self) -> str | None:
        if self.text_message_data and self.text_message_data.text_message:
            return self.text_message_data.text_message
        if self.extended_text_message_data and self.extended_text_message_data.text:
            return self.extended_text_message_data.text
        return None


class Notification(_ProviderModel):
    """Body of a webhook request or of a queued notification."""

    type_webhook: str | None = Field(None, alias="typeWebhook")
    instance_data: InstanceData | None = Field(None, alias="instanceData")
    timestamp: int | None = None
    id_message: str | None = Field(None, alias="idMessage")
    sender_data: SenderData | None = Field(None, alias="senderData")
    message_data: MessageData | None = Field(None, alias="messageData")

    @property
    def instance_id(self) -> str | None:
        if self.instance_data and self.instance_data.id_instance is not None:
            return str(self.instance_data.id_instance)
        return None


class QueuedNotification(_ProviderModel):
    """Item returned by receiveNotification.

    The body is kept raw so a malformed one still leaves a receipt to delete.
    """

    receipt_id: int = Field(alias="receiptId")
    body: dict[str, Any] = Field(default_factory=dict)

    def notification(self) -> Notification:
        return Notification.model_validate(self.body)


@dataclass(frozen=True)
class InboundText:
    """An incoming text message in canonical form."""

    instance_id: str | None
    sender_phone: str
    text: str
    provider_message_id: str | None
    sent_at: datetime
    sender_name: str | None = None


def timestamp_to_datetime(timestamp: int | float | None) -> datetime:
    """Provider timestamps are epoch seconds; missing means now."""
    if not timestamp:
        return datetime.now(timezone.utc)
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def parse_notification(body: dict[str, Any]) -> Notification:
    return Notification.model_validate(body)


def extract_inbound_text(notification: Notification) -> InboundText | None:
    """Resolve a notification into an inbound text, or None to discard it."""
    if notification.type_webhook != INCOMING_MESSAGE_RECEIVED:
        return None

    sender_data = notification.sender_data or SenderData()
    chat_id = sender_data.chat_id or sender_data.sender
    if is_group_chat(chat_id):
        return None

    sender_phone = phone_from_chat_id(sender_data.sender or sender_data.chat_id)
    text = notification.message_data.text if notification.message_data else None
    if not sender_phone or not text:
        return None

    return InboundText(
        instance_id=notification.instance_id,
        sender_phone=sender_phone,
        text=text,
        provider_message_id=notification.id_message,
        sent_at=timestamp_to_datetime(notification.timestamp),
        sender_name=sender_data.sender_name,
    )
