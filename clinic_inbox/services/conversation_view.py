"""Live conversation list for one clinic.

A ``ConversationView`` owns the current projection. It is rebuilt from its
source on ``refresh()``; between rebuilds it accepts optimistic outbound
placeholders and realtime rows, which are appended in place without
re-sorting the list.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Protocol
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from clinic_inbox.config import settings
from clinic_inbox.core.exceptions import GreenApiError
from clinic_inbox.core.phone import normalize_phone
from clinic_inbox.db.repositories import ClientRepository, LeadRepository, MessageRepository
from clinic_inbox.models import Client, Lead
from clinic_inbox.models.message import MessageDirection
from clinic_inbox.schemas.conversation import Conversation
from clinic_inbox.schemas.message import MessageRecord
from clinic_inbox.services.conversations import (
    build_conversations,
    contact_phone_for,
    find_conversation,
    make_conversation,
)
from clinic_inbox.services.green_api_client import GreenApiClient
from clinic_inbox.services.identity import IdentityResolver

logger = logging.getLogger(__name__)

TEMP_ID_PREFIX = "temp-"


class ConversationSource(Protocol):
    """Something that can produce the three inputs of the aggregation."""

    async def load(self) -> tuple[list[MessageRecord], list[Client], list[Lead]]: ...


class StoreConversationSource:
    """Messages from the message store, identities from the clinic records."""

    def __init__(
        self,
        session: AsyncSession,
        clinic_id: UUID,
        *,
        client_id: UUID | None = None,
        lead_id: UUID | None = None,
    ):
        self.session = session
        self.clinic_id = clinic_id
        self.client_id = client_id
        self.lead_id = lead_id

    async def load(self) -> tuple[list[MessageRecord], list[Client], list[Lead]]:
        message_repo = MessageRepository(self.session)
        if self.client_id or self.lead_id:
            rows = await message_repo.list_for_contact(
                self.clinic_id, client_id=self.client_id, lead_id=self.lead_id
            )
        else:
            rows = await message_repo.list_for_clinic(self.clinic_id)

        clients = await ClientRepository(self.session).list_active(self.clinic_id)
        leads = await LeadRepository(self.session).list_open(self.clinic_id)
        return [MessageRecord.from_orm_message(row) for row in rows], clients, leads


class ProviderConversationSource:
    """Recent traffic straight from the provider; identities resolved locally.

    Two calls (incoming + outgoing for the last N minutes) replace a scan of
    the message table. When the provider cannot be reached the source yields
    no messages rather than failing the view.
    """

    def __init__(
        self,
        session: AsyncSession,
        clinic_id: UUID,
        client: GreenApiClient,
        minutes: int | None = None,
    ):
        self.session = session
        self.clinic_id = clinic_id
        self.client = client
        self.minutes = minutes or settings.RECENT_MESSAGES_MINUTES

    async def fetch_messages(self) -> list[MessageRecord]:
        if not self.client.config.can_poll:
            return []

        try:
            incoming, outgoing = await asyncio.gather(
                self.client.last_incoming_messages(self.minutes),
                self.client.last_outgoing_messages(self.minutes),
            )
        except GreenApiError as e:
            logger.error(f"Failed to fetch recent messages for clinic {self.clinic_id}: {e.detail}")
            return []

        by_id: dict[str, MessageRecord] = {}
        for items, direction in ((incoming, "incoming"), (outgoing, "outgoing")):
            for item in items:
                record = MessageRecord.from_provider_message(
                    {**item, "type": direction}, clinic_id=str(self.clinic_id)
                )
                if record is not None:
                    by_id[record.id] = record
        return list(by_id.values())

    async def load(self) -> tuple[list[MessageRecord], list[Client], list[Lead]]:
        messages = await self.fetch_messages()
        clients = await ClientRepository(self.session).list_active(self.clinic_id)
        leads = await LeadRepository(self.session).list_open(self.clinic_id)
        return messages, clients, leads


class ConversationView:
    """The current conversation list of a clinic and the edits made to it."""

    def __init__(self, clinic_id: UUID | str, source: ConversationSource):
        self.clinic_id = str(clinic_id)
        self.source = source
        self.conversations: list[Conversation] = []
        self._records: list[MessageRecord] = []
        self._resolver = IdentityResolver([], [])
        self._pending: dict[str, MessageRecord] = {}

    async def refresh(self) -> list[Conversation]:
        """Reload from the source and rebuild the projection."""
        records, clients, leads = await self.source.load()

        resolver = IdentityResolver(clients, leads)

        # A placeholder is superseded once an attributable loaded row carries its provider id
        loaded_ids = {
            record.provider_message_id
            for record in records
            if record.provider_message_id and normalize_phone(contact_phone_for(record, resolver))
        }
        for temp_id, placeholder in list(self._pending.items()):
            if placeholder.provider_message_id in loaded_ids:
                del self._pending[temp_id]

        self._records = records
        self._resolver = resolver
        self.conversations = build_conversations(
            [*records, *self._pending.values()], clients, leads
        )
        return self.conversations

    def get(self, phone: str) -> Conversation | None:
        return find_conversation(self.conversations, phone)

    @property
    def pending(self) -> list[MessageRecord]:
        return list(self._pending.values())

    def _key_for(self, record: MessageRecord) -> str:
        return normalize_phone(contact_phone_for(record, self._resolver))

    def _append(self, key: str, record: MessageRecord) -> None:
        conversation = find_conversation(self.conversations, key)
        if conversation is None:
            self.conversations.append(make_conversation(key, [record], self._resolver))
            return

        conversation.messages.append(record)
        if conversation.last_message_time is None or record.sent_at >= conversation.last_message_time:
            conversation.last_message = record.content
            conversation.last_message_time = record.sent_at

    def merge_message(self, record: MessageRecord) -> bool:
        """Splice a newly stored row into the built list.

        Returns False when the row is already present or cannot be
        attributed to a contact. A row that confirms a pending placeholder
        takes the placeholder's slot.
        """
        if record.clinic_id and record.clinic_id != self.clinic_id:
            return False

        key = self._key_for(record)
        if not key:
            return False

        conversation = find_conversation(self.conversations, key)
        if conversation is not None:
            for index, existing in enumerate(conversation.messages):
                if existing.id == record.id or existing.dedup_key == record.dedup_key:
                    if existing.pending and existing.provider_message_id:
                        conversation.messages[index] = record
                        self._pending.pop(existing.id, None)
                        return True
                    return False

        self._append(key, record)
        return True

    def add_optimistic(
        self,
        phone: str,
        text: str,
        *,
        client_id: str | None = None,
        lead_id: str | None = None,
    ) -> MessageRecord | None:
        """Show an outbound message before the provider has accepted it."""
        placeholder = MessageRecord(
            id=f"{TEMP_ID_PREFIX}{uuid4().hex}",
            clinic_id=self.clinic_id,
            direction=MessageDirection.OUTBOUND,
            content=text,
            client_id=client_id,
            lead_id=lead_id,
            contact_phone=phone,
            sent_at=datetime.now(timezone.utc),
            pending=True,
        )
        key = self._key_for(placeholder)
        if not key:
            return None

        self._pending[placeholder.id] = placeholder
        self._append(key, placeholder)
        return placeholder

    def _replace_in_conversations(self, temp_id: str, record: MessageRecord | None) -> None:
        for conversation in list(self.conversations):
            for index, existing in enumerate(conversation.messages):
                if existing.id != temp_id:
                    continue
                if record is not None:
                    conversation.messages[index] = record
                    return

                del conversation.messages[index]
                if not conversation.messages:
                    self.conversations.remove(conversation)
                else:
                    last = max(conversation.messages, key=lambda m: (m.sent_at, m.id))
                    conversation.last_message = last.content
                    conversation.last_message_time = last.sent_at
                return

    def confirm_optimistic(self, temp_id: str, provider_message_id: str) -> bool:
        """Attach the provider id; the next refresh or realtime row supersedes it."""
        placeholder = self._pending.get(temp_id)
        if placeholder is None:
            return False

        confirmed = placeholder.model_copy(update={"provider_message_id": provider_message_id})
        self._pending[temp_id] = confirmed
        self._replace_in_conversations(temp_id, confirmed)
        return True

    def remove_optimistic(self, temp_id: str) -> bool:
        """Roll a placeholder back. Only the first call for an id has an effect."""
        if self._pending.pop(temp_id, None) is None:
            return False
        self._replace_in_conversations(temp_id, None)
        return True
