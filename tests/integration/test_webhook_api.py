"""Integration tests for the Green API webhook endpoint."""

import pytest

WEBHOOK_URL = "/api/v1/webhooks/green-api"


class TestWebhookEndpoint:
    """Tests for POST /webhooks/green-api."""

    @pytest.mark.asyncio
    async def test_incoming_message_returns_success(
        self, http_client, sample_clinic, sample_client, incoming_notification, fake_redis
    ):
        response = await http_client.post(WEBHOOK_URL, json=incoming_notification)

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert body["clientId"] == str(sample_client.id)
        # Realtime fan-out to the clinic and the client thread
        assert [channel for channel, _ in fake_redis.published] == [
            f"inbox:{sample_clinic.id}",
            f"inbox:{sample_clinic.id}:client:{sample_client.id}",
        ]

    @pytest.mark.asyncio
    async def test_ignored_type_still_returns_200(self, http_client, incoming_notification):
        incoming_notification["typeWebhook"] = "deviceInfo"

        response = await http_client.post(WEBHOOK_URL, json=incoming_notification)

        assert response.status_code == 200
        assert response.json() == {"status": "ignored", "type": "deviceInfo"}

    @pytest.mark.asyncio
    async def test_invalid_json_returns_500(self, http_client):
        response = await http_client.post(
            WEBHOOK_URL, content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 500
        assert "error" in response.json()

    @pytest.mark.asyncio
    async def test_rate_limit_per_forwarded_ip(self, http_client):
        body = {"typeWebhook": "stateInstanceChanged"}
        headers = {"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}

        for _ in range(100):
            response = await http_client.post(WEBHOOK_URL, json=body, headers=headers)
            assert response.status_code == 200

        response = await http_client.post(WEBHOOK_URL, json=body, headers=headers)
        assert response.status_code == 429
        assert "error" in response.json()

        # Another client is unaffected
        other = await http_client.post(WEBHOOK_URL, json=body, headers={"X-Forwarded-For": "198.51.100.2"})
        assert other.status_code == 200

    @pytest.mark.asyncio
    async def test_debug_endpoint_lists_deliveries(self, http_client, incoming_notification):
        incoming_notification["typeWebhook"] = "deviceInfo"
        await http_client.post(WEBHOOK_URL, json=incoming_notification)

        response = await http_client.get("/api/v1/debug/webhooks")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["status"] == "ignored"
