"""Provider connection management endpoints."""

import logging

from fastapi import APIRouter
from pydantic import BaseModel, Field

from clinic_inbox.api.deps import CurrentClinic, DbSession
from clinic_inbox.core.exceptions import ProviderNotConfiguredError
from clinic_inbox.db.repositories import ClinicRepository
from clinic_inbox.services import GreenApiClient, GreenApiConfig

router = APIRouter(prefix="/provider", tags=["provider"])
logger = logging.getLogger(__name__)


class ProviderStatus(BaseModel):
    configured: bool
    enabled: bool
    authorized: bool
    state: str | None = None
    phone: str | None = None


class WebhookSettings(BaseModel):
    webhook_url: str | None = None


class WebhookUpdate(BaseModel):
    webhook_url: str = Field(..., min_length=1)


def _client_for(clinic) -> GreenApiClient:
    config = GreenApiConfig.from_clinic(clinic)
    if not config.is_configured:
        raise ProviderNotConfiguredError("WhatsApp instance credentials are missing")
    return GreenApiClient(config)


@router.get("/status", response_model=ProviderStatus)
async def get_provider_status(db: DbSession, clinic: CurrentClinic):
    """Check the instance state and persist whether it is authorized."""
    config = GreenApiConfig.from_clinic(clinic)
    if not config.is_configured:
        return ProviderStatus(configured=False, enabled=config.is_enabled, authorized=False)

    state = (await GreenApiClient(config).get_state()).get("stateInstance")
    authorized = state == "authorized"
    if authorized != clinic.whatsapp_authorized:
        logger.info(f"Clinic {clinic.id} provider authorization changed to {authorized}")
        clinic = await ClinicRepository(db).set_authorized(clinic, authorized)

    return ProviderStatus(
        configured=True,
        enabled=config.is_enabled,
        authorized=authorized,
        state=state,
        phone=clinic.whatsapp_phone,
    )


@router.get("/webhook", response_model=WebhookSettings)
async def get_webhook_settings(clinic: CurrentClinic):
    """Read the webhook URL configured on the instance."""
    provider_settings = await _client_for(clinic).get_settings()
    return WebhookSettings(webhook_url=provider_settings.get("webhookUrl") or None)


@router.put("/webhook", response_model=WebhookSettings)
async def set_webhook_settings(data: WebhookUpdate, clinic: CurrentClinic):
    """Point the instance's incoming-message webhook at ``webhook_url``."""
    await _client_for(clinic).set_webhook_url(data.webhook_url)
    return WebhookSettings(webhook_url=data.webhook_url)
