"""Unit tests for Green API notification parsing."""

from datetime import datetime, timezone

from clinic_inbox.schemas.notification import (
    QueuedNotification,
    extract_inbound_text,
    parse_notification,
)


class TestExtractInboundText:
    """Tests for extract_inbound_text."""

    def test_text_message(self, incoming_notification):
        inbound = extract_inbound_text(parse_notification(incoming_notification))

        assert inbound is not None
        assert inbound.instance_id == "1101000001"
        assert inbound.sender_phone == "972501234567"
        assert inbound.sender_name == "Dana"
        assert inbound.text == "Hi, can I move my appointment?"
        assert inbound.provider_message_id == "abc123"
        assert inbound.sent_at == datetime.fromtimestamp(1760860800, tz=timezone.utc)

    def test_extended_text_message(self, incoming_notification):
        incoming_notification["messageData"] = {
            "typeMessage": "extendedTextMessage",
            "extendedTextMessageData": {"text": "See https://example.com"},
        }

        inbound = extract_inbound_text(parse_notification(incoming_notification))

        assert inbound.text == "See https://example.com"

    def test_other_event_types_are_discarded(self, incoming_notification):
        incoming_notification["typeWebhook"] = "outgoingMessageStatus"

        assert extract_inbound_text(parse_notification(incoming_notification)) is None

    def test_group_chat_is_discarded(self, incoming_notification):
        incoming_notification["senderData"]["chatId"] = "120363043968066561@g.us"

        assert extract_inbound_text(parse_notification(incoming_notification)) is None

    def test_media_without_text_is_discarded(self, incoming_notification):
        incoming_notification["messageData"] = {
            "typeMessage": "imageMessage",
            "fileMessageData": {"downloadUrl": "https://example.com/a.jpg"},
        }

        assert extract_inbound_text(parse_notification(incoming_notification)) is None

    def test_missing_sender_is_discarded(self, incoming_notification):
        incoming_notification["senderData"] = {}

        assert extract_inbound_text(parse_notification(incoming_notification)) is None

    def test_missing_timestamp_uses_now(self, incoming_notification):
        del incoming_notification["timestamp"]
        before = datetime.now(timezone.utc)

        inbound = extract_inbound_text(parse_notification(incoming_notification))

        assert inbound.sent_at >= before


class TestQueuedNotification:
    """Tests for receiveNotification items."""

    def test_receipt_and_body(self, incoming_notification):
        item = QueuedNotification.model_validate({"receiptId": 7, "body": incoming_notification})

        assert item.receipt_id == 7
        assert item.notification().id_message == "abc123"
        assert item.notification().instance_id == "1101000001"
