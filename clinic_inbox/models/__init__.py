"""SQLAlchemy models."""

from clinic_inbox.models.client import Client
from clinic_inbox.models.clinic import Clinic
from clinic_inbox.models.lead import Lead, LeadStatus
from clinic_inbox.models.message import MessageDirection, WhatsAppMessage

__all__ = [
    "Client",
    "Clinic",
    "Lead",
    "LeadStatus",
    "MessageDirection",
    "WhatsAppMessage",
]
