"""
Core module - Configuration, database and email transport.
"""

from careers.core.config import get_settings, settings
from careers.core.database import Base, close_db, get_db, init_db
from careers.core.email import ResendMailTransport

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Database
    "Base",
    "get_db",
    "init_db",
    "close_db",
    # Email
    "ResendMailTransport",
]
