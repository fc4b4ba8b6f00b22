"""Conversation endpoints."""

from enum import Enum
from uuid import UUID

from fastapi import APIRouter, Query

from clinic_inbox.api.deps import CurrentClinic, DbSession
from clinic_inbox.core.exceptions import BadRequestError, NotFoundError
from clinic_inbox.models import Clinic
from clinic_inbox.schemas import Conversation, ConversationFilter, ConversationList, ConversationStats
from clinic_inbox.services import (
    ConversationView,
    GreenApiClient,
    GreenApiConfig,
    ProviderConversationSource,
    StoreConversationSource,
    conversation_stats,
    filter_conversations,
)

router = APIRouter(prefix="/conversations", tags=["conversations"])


class ConversationSourceName(str, Enum):
    STORE = "store"
    PROVIDER = "provider"


def _parse_filter(value: str) -> ConversationFilter:
    try:
        return ConversationFilter(value)
    except ValueError:
        raise BadRequestError(f"Unknown conversation filter '{value}'")


async def _load_view(
    db,
    clinic: Clinic,
    source: ConversationSourceName,
    client_id: UUID | None = None,
    lead_id: UUID | None = None,
) -> ConversationView:
    if source == ConversationSourceName.PROVIDER:
        client = GreenApiClient(GreenApiConfig.from_clinic(clinic))
        conversation_source = ProviderConversationSource(db, clinic.id, client)
    else:
        conversation_source = StoreConversationSource(
            db, clinic.id, client_id=client_id, lead_id=lead_id
        )

    view = ConversationView(clinic.id, conversation_source)
    await view.refresh()
    return view


@router.get("", response_model=ConversationList)
async def list_conversations(
    db: DbSession,
    clinic: CurrentClinic,
    source: ConversationSourceName = ConversationSourceName.STORE,
    filter: str = Query("all", description="all, clients, leads or unknown"),
    search: str | None = Query(None, description="Name or phone fragment"),
    client_id: UUID | None = Query(None, description="Only this client's messages (store source)"),
    lead_id: UUID | None = Query(None, description="Only this lead's messages (store source)"),
):
    """List the clinic's conversations, newest activity first."""
    conversation_filter = _parse_filter(filter)
    view = await _load_view(db, clinic, source, client_id=client_id, lead_id=lead_id)
    items = filter_conversations(view.conversations, conversation_filter, search)
    return ConversationList(items=items, total=len(items))


@router.get("/stats", response_model=ConversationStats)
async def get_conversation_stats(
    db: DbSession,
    clinic: CurrentClinic,
    source: ConversationSourceName = ConversationSourceName.STORE,
):
    """Count conversations per contact type."""
    view = await _load_view(db, clinic, source)
    return conversation_stats(view.conversations)


@router.get("/{phone}", response_model=Conversation)
async def get_conversation(
    phone: str,
    db: DbSession,
    clinic: CurrentClinic,
    source: ConversationSourceName = ConversationSourceName.STORE,
):
    """Get one conversation by phone number in any format."""
    view = await _load_view(db, clinic, source)
    conversation = view.get(phone)
    if not conversation:
        raise NotFoundError("Conversation", phone)
    return conversation
