"""Database module."""

from clinic_inbox.db.base import Base
from clinic_inbox.db.session import async_session_maker, get_db, init_db

__all__ = ["Base", "async_session_maker", "get_db", "init_db"]
