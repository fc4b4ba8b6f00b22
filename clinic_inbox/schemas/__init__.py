"""Pydantic schemas for request/response models."""

from clinic_inbox.schemas.conversation import (
    Conversation,
    ConversationFilter,
    ConversationList,
    ConversationStats,
    ConversationType,
)
from clinic_inbox.schemas.message import MessageRecord, MessageSend, SendResult
from clinic_inbox.schemas.notification import (
    InboundText,
    Notification,
    QueuedNotification,
    extract_inbound_text,
    parse_notification,
)

__all__ = [
    # Conversation
    "Conversation",
    "ConversationFilter",
    "ConversationList",
    "ConversationStats",
    "ConversationType",
    # Message
    "MessageRecord",
    "MessageSend",
    "SendResult",
    # Notification
    "InboundText",
    "Notification",
    "QueuedNotification",
    "extract_inbound_text",
    "parse_notification",
]
