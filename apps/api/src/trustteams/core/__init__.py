"""
Core module - Configuration, database, security, and utilities.
"""

from trustteams.core.config import get_settings, settings
from trustteams.core.database import Base, close_db, get_db, init_db
from trustteams.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Database
    "Base",
    "get_db",
    "init_db",
    "close_db",
    # Security
    "hash_password",
    "verify_password",
    "create_access_token",
    "create_refresh_token",
    "decode_token",
]
