"""Unit tests for ConversationView and the conversation sources."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from clinic_inbox.core.exceptions import GreenApiError
from clinic_inbox.models import Client
from clinic_inbox.models.message import MessageDirection
from clinic_inbox.schemas.message import MessageRecord
from clinic_inbox.services.conversation_view import ConversationView, ProviderConversationSource

T0 = datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)


class StaticSource:
    """Returns whatever records it currently holds."""

    def __init__(self, records=None, clients=None, leads=None):
        self.records = list(records or [])
        self.clients = list(clients or [])
        self.leads = list(leads or [])

    async def load(self):
        return list(self.records), self.clients, self.leads


def record(id: str, phone: str, minutes: int, **kwargs) -> MessageRecord:
    fields = {
        "id": id,
        "clinic_id": "clinic-1",
        "direction": MessageDirection.INBOUND,
        "content": id,
        "sender_phone": phone,
        "provider_message_id": id,
        "sent_at": T0 + timedelta(minutes=minutes),
    }
    fields.update(kwargs)
    return MessageRecord(**fields)


@pytest.fixture
def source() -> StaticSource:
    return StaticSource(
        records=[record("m1", "0501234567", 1), record("m2", "0527654321", 2)],
    )


@pytest.fixture
async def view(source) -> ConversationView:
    view = ConversationView("clinic-1", source)
    await view.refresh()
    return view


class TestOptimisticPlaceholders:
    """Tests for add/confirm/remove of optimistic messages."""

    @pytest.mark.asyncio
    async def test_remove_restores_previous_messages(self, view):
        conversation = view.get("0501234567")
        before = list(conversation.messages)
        before_last = (conversation.last_message, conversation.last_message_time)

        placeholder = view.add_optimistic("0501234567", "On my way")
        assert placeholder.id.startswith("temp-")
        assert conversation.messages[-1].pending is True

        assert view.remove_optimistic(placeholder.id) is True
        assert conversation.messages == before
        assert (conversation.last_message, conversation.last_message_time) == before_last

    @pytest.mark.asyncio
    async def test_remove_is_applied_once(self, view):
        placeholder = view.add_optimistic("0501234567", "Hello")

        assert view.remove_optimistic(placeholder.id) is True
        assert view.remove_optimistic(placeholder.id) is False
        assert view.confirm_optimistic(placeholder.id, "p-1") is False

    @pytest.mark.asyncio
    async def test_placeholder_for_new_phone_creates_and_removes_conversation(self, view):
        placeholder = view.add_optimistic("0539999999", "Welcome")
        assert view.get("0539999999") is not None
        assert view.conversations[-1].id == "0539999999"

        view.remove_optimistic(placeholder.id)

        assert view.get("0539999999") is None
        assert len(view.conversations) == 2

    @pytest.mark.asyncio
    async def test_confirmed_placeholder_superseded_by_stored_row(self, view, source):
        placeholder = view.add_optimistic("0501234567", "Confirmed")
        view.confirm_optimistic(placeholder.id, "p-42")

        source.records.append(
            record(
                "row-42",
                "",
                5,
                direction=MessageDirection.OUTBOUND,
                sender_phone=None,
                contact_phone="0501234567",
                provider_message_id="p-42",
            )
        )
        await view.refresh()

        messages = view.get("0501234567").messages
        assert [m.id for m in messages] == ["m1", "row-42"]
        assert view.pending == []

    @pytest.mark.asyncio
    async def test_confirmed_placeholder_kept_while_stored_row_has_no_phone(self, view, source):
        placeholder = view.add_optimistic("0509999999", "Welcome!")
        view.confirm_optimistic(placeholder.id, "p-77")

        source.records.append(
            record(
                "row-77",
                "",
                5,
                direction=MessageDirection.OUTBOUND,
                sender_phone=None,
                provider_message_id="p-77",
            )
        )
        await view.refresh()

        assert [m.id for m in view.get("0509999999").messages] == [placeholder.id]
        assert [m.id for m in view.pending] == [placeholder.id]

    @pytest.mark.asyncio
    async def test_unconfirmed_placeholder_survives_refresh(self, view):
        placeholder = view.add_optimistic("0501234567", "Sending")

        await view.refresh()

        assert view.get("0501234567").messages[-1].id == placeholder.id

    @pytest.mark.asyncio
    async def test_placeholder_without_phone_is_not_shown(self, view):
        assert view.add_optimistic("", "nobody") is None
        assert view.pending == []


class TestMergeMessage:
    """Tests for realtime merge."""

    @pytest.mark.asyncio
    async def test_appends_without_reordering(self, view):
        order_before = [c.id for c in view.conversations]

        merged = view.merge_message(record("m3", "0501234567", 10))

        assert merged is True
        assert [c.id for c in view.conversations] == order_before
        conversation = view.get("0501234567")
        assert conversation.messages[-1].id == "m3"
        assert conversation.last_message_time == T0 + timedelta(minutes=10)

    @pytest.mark.asyncio
    async def test_duplicate_is_ignored(self, view):
        assert view.merge_message(record("m1", "0501234567", 1)) is False
        assert view.merge_message(record("other-id", "0501234567", 1, provider_message_id="m1")) is False
        assert len(view.get("0501234567").messages) == 1

    @pytest.mark.asyncio
    async def test_new_conversation_appended_at_end(self, view):
        view.merge_message(record("m9", "0539999999", 30))

        assert view.conversations[-1].id == "0539999999"

    @pytest.mark.asyncio
    async def test_other_clinic_is_ignored(self, view):
        assert view.merge_message(record("x", "0501234567", 3, clinic_id="clinic-2")) is False

    @pytest.mark.asyncio
    async def test_stored_row_replaces_confirmed_placeholder(self, view):
        placeholder = view.add_optimistic("0501234567", "Hi")
        view.confirm_optimistic(placeholder.id, "p-7")

        stored = record(
            "row-7",
            "",
            2,
            direction=MessageDirection.OUTBOUND,
            sender_phone=None,
            contact_phone="0501234567",
            provider_message_id="p-7",
        )

        assert view.merge_message(stored) is True
        assert [m.id for m in view.get("0501234567").messages] == ["m1", "row-7"]
        assert view.pending == []


class TestProviderConversationSource:
    """Tests for the provider-direct source."""

    @pytest.mark.asyncio
    async def test_merges_incoming_and_outgoing(self, db_session, sample_clinic, mock_green_api_client):
        mock_green_api_client.last_incoming_messages.return_value = [
            {
                "idMessage": "in-1",
                "chatId": "972501234567@c.us",
                "timestamp": 1760860800,
                "textMessage": "Hi",
                "senderName": "Dana",
            },
            {"idMessage": "grp-1", "chatId": "120363043968066561@g.us", "timestamp": 1760860801},
        ]
        mock_green_api_client.last_outgoing_messages.return_value = [
            {
                "idMessage": "out-1",
                "chatId": "972501234567@c.us",
                "timestamp": 1760860900,
                "extendedTextMessage": {"text": "Sure"},
            },
        ]

        source = ProviderConversationSource(db_session, sample_clinic.id, mock_green_api_client)
        view = ConversationView(sample_clinic.id, source)
        conversations = await view.refresh()

        assert len(conversations) == 1
        assert [m.id for m in conversations[0].messages] == ["in-1", "out-1"]
        assert conversations[0].messages[1].direction == MessageDirection.OUTBOUND

    @pytest.mark.asyncio
    async def test_provider_error_yields_empty_list(self, db_session, sample_clinic, mock_green_api_client):
        mock_green_api_client.last_incoming_messages = AsyncMock(side_effect=GreenApiError("down"))

        source = ProviderConversationSource(db_session, sample_clinic.id, mock_green_api_client)

        assert await ConversationView(sample_clinic.id, source).refresh() == []

    @pytest.mark.asyncio
    async def test_identity_resolved_from_clinic_records(
        self, db_session, sample_clinic, sample_client, mock_green_api_client
    ):
        mock_green_api_client.last_incoming_messages.return_value = [
            {"idMessage": "in-1", "chatId": "972501234567@c.us", "timestamp": 1760860800, "textMessage": "Hi"},
        ]

        source = ProviderConversationSource(db_session, sample_clinic.id, mock_green_api_client)
        conversations = await ConversationView(sample_clinic.id, source).refresh()

        assert conversations[0].type.value == "client"
        assert conversations[0].client_id == str(sample_client.id)
