"""End-to-end tests: webhook and poller delivering into one inbox."""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select

from clinic_inbox.core.exceptions import GreenApiError
from clinic_inbox.models import WhatsAppMessage
from clinic_inbox.schemas.notification import QueuedNotification
from clinic_inbox.services.green_api_client import GreenApiConfig
from clinic_inbox.workers.poll_drainer import PollDrainer


class TestInboxFlow:
    """A message delivered by webhook and again by the queue is stored once."""

    @pytest.mark.asyncio
    async def test_webhook_then_queue_redelivery(
        self,
        http_client,
        db_session,
        session_factory,
        sample_clinic,
        sample_client,
        incoming_notification,
        mock_green_api_client,
    ):
        response = await http_client.post("/api/v1/webhooks/green-api", json=incoming_notification)
        assert response.json()["status"] == "success"

        mock_green_api_client.receive_notification = AsyncMock(
            side_effect=[
                QueuedNotification.model_validate({"receiptId": 1, "body": incoming_notification}),
                None,
            ]
        )
        drainer = PollDrainer(
            sample_clinic.id,
            GreenApiConfig.from_clinic(sample_clinic),
            client=mock_green_api_client,
            session_factory=session_factory,
        )
        assert await drainer.drain() == 0
        mock_green_api_client.delete_notification.assert_awaited_once_with(1)

        count = await db_session.execute(select(func.count()).select_from(WhatsAppMessage))
        assert count.scalar_one() == 1

        response = await http_client.get(
            "/api/v1/conversations", headers={"X-Clinic-Id": str(sample_clinic.id)}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        conversation = data["items"][0]
        assert conversation["id"] == "0501234567"
        assert conversation["type"] == "client"
        assert conversation["display_name"] == "Dana Levi"
        assert len(conversation["messages"]) == 1
        assert conversation["messages"][0]["provider_message_id"] == "abc123"


class TestConversationEndpoints:
    """Tests for the conversation list endpoints."""

    @pytest.mark.asyncio
    async def test_filter_search_and_stats(
        self, http_client, sample_clinic, sample_client, sample_lead, incoming_notification
    ):
        await http_client.post("/api/v1/webhooks/green-api", json=incoming_notification)
        from_lead = {
            **incoming_notification,
            "idMessage": "lead-1",
            "timestamp": incoming_notification["timestamp"] + 60,
            "senderData": {"chatId": "972527654321@c.us", "sender": "972527654321@c.us"},
        }
        await http_client.post("/api/v1/webhooks/green-api", json=from_lead)
        headers = {"X-Clinic-Id": str(sample_clinic.id)}

        listing = (await http_client.get("/api/v1/conversations", headers=headers)).json()
        assert [c["id"] for c in listing["items"]] == ["0527654321", "0501234567"]

        leads = (await http_client.get("/api/v1/conversations?filter=lead", headers=headers)).json()
        assert [c["type"] for c in leads["items"]] == ["lead"]

        found = (await http_client.get("/api/v1/conversations?search=levi", headers=headers)).json()
        assert [c["id"] for c in found["items"]] == ["0501234567"]

        stats = (await http_client.get("/api/v1/conversations/stats", headers=headers)).json()
        assert stats == {"total": 2, "clients": 1, "leads": 1, "unknown": 0}

        single = await http_client.get("/api/v1/conversations/972501234567", headers=headers)
        assert single.status_code == 200
        assert single.json()["client_id"] == str(sample_client.id)

    @pytest.mark.asyncio
    async def test_bad_filter_and_unknown_clinic(self, http_client, sample_clinic):
        headers = {"X-Clinic-Id": str(sample_clinic.id)}

        bad = await http_client.get("/api/v1/conversations?filter=everyone", headers=headers)
        assert bad.status_code == 400

        missing = await http_client.get(
            "/api/v1/conversations", headers={"X-Clinic-Id": "00000000-0000-0000-0000-000000000000"}
        )
        assert missing.status_code == 404

        unknown = await http_client.get("/api/v1/conversations/0539999999", headers=headers)
        assert unknown.status_code == 404


class TestSendEndpoint:
    """Tests for POST /messages."""

    @pytest.mark.asyncio
    async def test_not_configured_is_409(self, http_client, db_session, sample_clinic):
        sample_clinic.whatsapp_enabled = False
        await db_session.commit()

        response = await http_client.post(
            "/api/v1/messages",
            json={"phone": "0501234567", "content": "Hi"},
            headers={"X-Clinic-Id": str(sample_clinic.id)},
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_send_success_is_201(self, http_client, sample_clinic, mock_green_api_client, fake_redis):
        with patch("clinic_inbox.services.outbound.GreenApiClient", return_value=mock_green_api_client):
            response = await http_client.post(
                "/api/v1/messages",
                json={"phone": "050-123-4567", "content": "Reminder: tomorrow 10:00"},
                headers={"X-Clinic-Id": str(sample_clinic.id)},
            )

        assert response.status_code == 201
        assert response.json()["message_id"] == "BAE5F4886F6F2D05"
        assert fake_redis.published

    @pytest.mark.asyncio
    async def test_provider_failure_is_502(self, http_client, sample_clinic, mock_green_api_client):
        mock_green_api_client.send_text = AsyncMock(side_effect=GreenApiError("instance not authorized"))

        with patch("clinic_inbox.services.outbound.GreenApiClient", return_value=mock_green_api_client):
            response = await http_client.post(
                "/api/v1/messages",
                json={"phone": "0501234567", "content": "Hi"},
                headers={"X-Clinic-Id": str(sample_clinic.id)},
            )

        assert response.status_code == 502
        assert response.json()["detail"] == "Green API error: instance not authorized"
