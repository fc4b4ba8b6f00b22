"""Conversation schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from clinic_inbox.schemas.message import MessageRecord


class ConversationType(str, Enum):
    """Who is on the other side of a conversation."""

    CLIENT = "client"
    LEAD = "lead"
    UNKNOWN = "unknown"


class ConversationFilter(str, Enum):
    """List filter; values are the plural forms the inbox UI sends."""

    ALL = "all"
    CLIENTS = "clients"
    LEADS = "leads"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value):
        if not isinstance(value, str):
            return None
        value = value.strip().lower()
        singular = {"client": cls.CLIENTS, "lead": cls.LEADS}
        return singular.get(value) or next((m for m in cls if m.value == value), None)

    @property
    def conversation_type(self) -> ConversationType | None:
        return {
            ConversationFilter.CLIENTS: ConversationType.CLIENT,
            ConversationFilter.LEADS: ConversationType.LEAD,
            ConversationFilter.UNKNOWN: ConversationType.UNKNOWN,
        }.get(self)


class Conversation(BaseModel):
    """All messages exchanged with one normalized phone."""

    id: str = Field(description="Normalized phone key")
    phone: str = Field(description="Phone as first seen in the messages")
    type: ConversationType
    display_name: str
    client_id: str | None = None
    lead_id: str | None = None
    messages: list[MessageRecord] = Field(default_factory=list)
    last_message: str = ""
    last_message_time: datetime | None = None


class ConversationList(BaseModel):
    """Schema for a filtered conversation list."""

    items: list[Conversation]
    total: int


class ConversationStats(BaseModel):
    """Conversation counts per type."""

    total: int
    clients: int
    leads: int
    unknown: int
