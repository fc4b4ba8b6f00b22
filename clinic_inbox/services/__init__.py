"""Business logic services."""

from clinic_inbox.services.conversation_view import (
    ConversationView,
    ProviderConversationSource,
    StoreConversationSource,
)
from clinic_inbox.services.conversations import (
    build_conversations,
    conversation_stats,
    filter_conversations,
    find_conversation,
)
from clinic_inbox.services.green_api_client import GreenApiClient, GreenApiConfig
from clinic_inbox.services.identity import IdentityResolver, Resolution
from clinic_inbox.services.ingestion import InboundMessageProcessor, IngestOutcome
from clinic_inbox.services.outbound import OutboundSendCoordinator
from clinic_inbox.services.realtime import RealtimeMergeListener, RealtimePublisher
from clinic_inbox.services.webhook_event_store import WebhookEventStore
from clinic_inbox.services.webhook_receiver import WebhookReceiver

__all__ = [
    "ConversationView",
    "ProviderConversationSource",
    "StoreConversationSource",
    "build_conversations",
    "conversation_stats",
    "filter_conversations",
    "find_conversation",
    "GreenApiClient",
    "GreenApiConfig",
    "IdentityResolver",
    "Resolution",
    "InboundMessageProcessor",
    "IngestOutcome",
    "OutboundSendCoordinator",
    "RealtimeMergeListener",
    "RealtimePublisher",
    "WebhookEventStore",
    "WebhookReceiver",
]
