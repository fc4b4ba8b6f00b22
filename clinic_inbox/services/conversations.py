"""Grouping of messages into per-contact conversations.

``build_conversations`` is a pure function of (messages, clients, leads): the
store-backed path and the provider-direct path both rebuild the list from
scratch with it, and rebuilding from the same inputs in any order gives the
same result.
"""

from collections.abc import Iterable

from clinic_inbox.core.phone import normalize_phone
from clinic_inbox.models import Client, Lead
from clinic_inbox.models.message import MessageDirection
from clinic_inbox.schemas.conversation import (
    Conversation,
    ConversationFilter,
    ConversationStats,
    ConversationType,
)
from clinic_inbox.schemas.message import MessageRecord
from clinic_inbox.services.identity import IdentityResolver, Resolution


def contact_phone_for(message: MessageRecord, resolver: IdentityResolver) -> str:
    """Raw phone of the other party, or "" when the message cannot be attributed."""
    if message.direction == MessageDirection.INBOUND:
        return message.sender_phone or message.contact_phone or ""

    return (
        resolver.client_phone(message.client_id)
        or resolver.lead_phone(message.lead_id)
        or message.contact_phone
        or ""
    )


def _dedup_rank(message: MessageRecord) -> tuple:
    # Stored rows carry identity links; provider items use the provider id as id
    return (message.pending, message.id == message.provider_message_id, message.id)


def _sort_key(message: MessageRecord) -> tuple:
    return (message.sent_at, message.id)


def _resolve_group(
    key: str, messages: list[MessageRecord], resolver: IdentityResolver
) -> Resolution:
    resolution = resolver.resolve(key)
    if resolution.type != ConversationType.UNKNOWN:
        return resolution

    # No exact phone match: fall back to links recorded on the messages
    for message in messages:
        client = resolver.clients_by_id.get(message.client_id or "")
        if client is not None:
            return Resolution(client=client)
    for message in messages:
        lead = resolver.leads_by_id.get(message.lead_id or "")
        if lead is not None:
            return Resolution(lead=lead)
    return resolution


def make_conversation(
    key: str, messages: list[MessageRecord], resolver: IdentityResolver
) -> Conversation:
    """Build one conversation from already-deduplicated, sorted messages."""
    raw_phone = contact_phone_for(messages[0], resolver) or key
    resolution = _resolve_group(key, messages, resolver)
    last = messages[-1]

    return Conversation(
        id=key,
        phone=raw_phone,
        type=resolution.type,
        display_name=resolution.display_name(raw_phone),
        client_id=str(resolution.client.id) if resolution.client is not None else None,
        lead_id=(
            str(resolution.lead.id)
            if resolution.client is None and resolution.lead is not None
            else None
        ),
        messages=messages,
        last_message=last.content,
        last_message_time=last.sent_at,
    )


def build_conversations(
    messages: Iterable[MessageRecord],
    clients: Iterable[Client],
    leads: Iterable[Lead],
) -> list[Conversation]:
    """Group messages by normalized contact phone.

    Messages are deduplicated by provider id (falling back to id) inside each
    group, ordered by ``sent_at`` ascending, and conversations are ordered by
    their latest message, most recent first.
    """
    resolver = IdentityResolver(clients, leads)
    groups: dict[str, dict[str, MessageRecord]] = {}

    for message in messages:
        key = normalize_phone(contact_phone_for(message, resolver))
        if not key:
            continue

        bucket = groups.setdefault(key, {})
        existing = bucket.get(message.dedup_key)
        if existing is None or _dedup_rank(message) < _dedup_rank(existing):
            bucket[message.dedup_key] = message

    conversations = [
        make_conversation(key, sorted(bucket.values(), key=_sort_key), resolver)
        for key, bucket in groups.items()
    ]
    return sort_conversations(conversations)


def sort_conversations(conversations: list[Conversation]) -> list[Conversation]:
    """Most recent first; equal times fall back to the phone key."""
    ordered = sorted(conversations, key=lambda conversation: conversation.id)
    ordered.sort(key=lambda conversation: conversation.last_message_time, reverse=True)
    return ordered


def filter_conversations(
    conversations: list[Conversation],
    conversation_filter: ConversationFilter | str = ConversationFilter.ALL,
    search: str | None = None,
) -> list[Conversation]:
    """Apply the type filter and the free-text search."""
    result = conversations

    target_type = ConversationFilter(conversation_filter).conversation_type
    if target_type is not None:
        result = [conversation for conversation in result if conversation.type == target_type]

    query = (search or "").strip().lower()
    if query:
        normalized_query = normalize_phone(query)
        result = [
            conversation
            for conversation in result
            if query in conversation.display_name.lower()
            or query in conversation.phone
            or (normalized_query and normalized_query in conversation.id)
        ]

    return result


def conversation_stats(conversations: list[Conversation]) -> ConversationStats:
    """Count conversations per type."""
    counts = {conversation_type: 0 for conversation_type in ConversationType}
    for conversation in conversations:
        counts[conversation.type] += 1

    return ConversationStats(
        total=len(conversations),
        clients=counts[ConversationType.CLIENT],
        leads=counts[ConversationType.LEAD],
        unknown=counts[ConversationType.UNKNOWN],
    )


def find_conversation(conversations: list[Conversation], phone: str) -> Conversation | None:
    """Look a conversation up by any representation of its phone."""
    key = normalize_phone(phone)
    if not key:
        return None
    return next((conversation for conversation in conversations if conversation.id == key), None)
