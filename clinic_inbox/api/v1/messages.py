"""Message endpoints."""

from fastapi import APIRouter, HTTPException, status

from clinic_inbox.api.deps import CurrentClinic, DbSession, RedisClient
from clinic_inbox.core.exceptions import ProviderNotConfiguredError
from clinic_inbox.schemas import MessageSend, SendResult
from clinic_inbox.services import OutboundSendCoordinator, RealtimePublisher

router = APIRouter(prefix="/messages", tags=["messages"])


@router.post("", response_model=SendResult, status_code=status.HTTP_201_CREATED)
async def send_message(
    data: MessageSend,
    db: DbSession,
    redis: RedisClient,
    clinic: CurrentClinic,
):
    """Send a text message to a phone number."""
    coordinator = OutboundSendCoordinator(db, clinic, publisher=RealtimePublisher(redis))
    if not coordinator.config.can_send:
        raise ProviderNotConfiguredError()

    result = await coordinator.send(
        data.phone,
        data.content,
        client_id=data.client_id,
        lead_id=data.lead_id,
    )
    if not result.success:
        # error already carries the provider detail
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.error)
    return result
