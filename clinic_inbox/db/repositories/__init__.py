"""Repository classes for database operations."""

from clinic_inbox.db.repositories.base import BaseRepository
from clinic_inbox.db.repositories.client import ClientRepository
from clinic_inbox.db.repositories.clinic import ClinicRepository
from clinic_inbox.db.repositories.lead import LeadRepository
from clinic_inbox.db.repositories.message import MessageRepository

__all__ = [
    "BaseRepository",
    "ClientRepository",
    "ClinicRepository",
    "LeadRepository",
    "MessageRepository",
]
