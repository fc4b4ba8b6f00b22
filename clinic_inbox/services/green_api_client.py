"""HTTP client for the Green API WhatsApp gateway."""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from clinic_inbox.config import settings
from clinic_inbox.core.exceptions import GreenApiError
from clinic_inbox.models import Clinic
from clinic_inbox.schemas.notification import QueuedNotification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GreenApiConfig:
    """Credentials and state of one Green API instance."""

    instance_id: str | None
    api_token: str | None
    is_enabled: bool = False
    is_authorized: bool = False

    @property
    def is_configured(self) -> bool:
        return bool(self.instance_id and self.api_token)

    @property
    def can_send(self) -> bool:
        return self.is_configured and self.is_enabled

    @property
    def can_poll(self) -> bool:
        return self.can_send and self.is_authorized

    @classmethod
    def from_clinic(cls, clinic: Clinic) -> "GreenApiConfig":
        return cls(
            instance_id=clinic.whatsapp_instance_id,
            api_token=clinic.whatsapp_api_token,
            is_enabled=bool(clinic.whatsapp_enabled),
            is_authorized=bool(clinic.whatsapp_authorized),
        )


class GreenApiClient:
    """HTTP client for one Green API instance."""

    def __init__(self, config: GreenApiConfig):
        self.config = config
        self.base_url = settings.GREEN_API_URL.rstrip("/")
        self.timeout = settings.GREEN_API_TIMEOUT

    def _url(self, method: str, suffix: str = "") -> str:
        return (
            f"{self.base_url}/waInstance{self.config.instance_id}/{method}/"
            f"{self.config.api_token}{suffix}"
        )

    async def _request(
        self,
        http_method: str,
        api_method: str,
        suffix: str = "",
        **kwargs,
    ) -> Any:
        """Make an HTTP request to the Green API."""
        if not self.config.is_configured:
            raise GreenApiError("instance is not configured")

        url = self._url(api_method, suffix)
        logger.debug(f"Green API request: {http_method} {api_method} (instance: {self.config.instance_id})")

        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            try:
                response = await client.request(http_method, url, **kwargs)
            except httpx.RequestError as e:
                logger.error(f"Green API connection error on {api_method}: {e}")
                raise GreenApiError(f"Connection error: {e}")

        if response.status_code >= 400:
            logger.error(f"Green API error on {api_method}: {response.status_code} - {response.text}")
            raise GreenApiError(response.text or f"HTTP {response.status_code}")

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            raise GreenApiError(f"Invalid JSON from {api_method}")

    async def send_text(self, chat_id: str, text: str) -> str:
        """Send a text message; returns the provider message id."""
        data = await self._request(
            "POST",
            "sendMessage",
            json={"chatId": chat_id, "message": text},
        )
        message_id = (data or {}).get("idMessage")
        if not message_id:
            raise GreenApiError((data or {}).get("message") or "no message id returned")
        return message_id

    async def receive_notification(self) -> QueuedNotification | None:
        """Pull the next queued notification, or None when the queue is empty."""
        data = await self._request("GET", "receiveNotification")
        if not data:
            return None
        return QueuedNotification.model_validate(data)

    async def delete_notification(self, receipt_id: int) -> bool:
        """Remove a notification from the instance queue."""
        data = await self._request("DELETE", "deleteNotification", suffix=f"/{receipt_id}")
        return bool(data and data.get("result") is True)

    async def last_incoming_messages(self, minutes: int) -> list[dict[str, Any]]:
        """Incoming messages of the last ``minutes`` across all chats."""
        data = await self._request("GET", "lastIncomingMessages", params={"minutes": minutes})
        return data if isinstance(data, list) else []

    async def last_outgoing_messages(self, minutes: int) -> list[dict[str, Any]]:
        """Outgoing messages of the last ``minutes`` across all chats."""
        data = await self._request("GET", "lastOutgoingMessages", params={"minutes": minutes})
        return data if isinstance(data, list) else []

    async def get_state(self) -> dict[str, Any]:
        """Instance state; ``stateInstance == "authorized"`` once the QR is scanned."""
        return await self._request("GET", "getStateInstance") or {}

    async def get_settings(self) -> dict[str, Any]:
        """Current instance settings, including the webhook URL."""
        return await self._request("GET", "getSettings") or {}

    async def set_webhook_url(self, webhook_url: str) -> bool:
        """Point incoming-message webhooks at ``webhook_url``."""
        data = await self._request(
            "POST",
            "setSettings",
            json={
                "webhookUrl": webhook_url,
                "webhookUrlToken": "",
                "incomingWebhook": "yes",
                "outgoingWebhook": "no",
                "outgoingMessageWebhook": "no",
                "outgoingAPIMessageWebhook": "no",
                "stateWebhook": "no",
                "deviceWebhook": "no",
                "markIncomingMessagesReaded": "no",
            },
        )
        return bool(data and data.get("saveSettings"))
