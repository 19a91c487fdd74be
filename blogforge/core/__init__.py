"""Core utilities and configuration."""

from blogforge.core.config import Settings, get_settings
from blogforge.core.database import Base, db_manager, get_session, transaction
from blogforge.core.logging import db_logger, get_logger, setup_logging

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Database
    "Base",
    "db_manager",
    "get_session",
    "transaction",
    # Logging
    "db_logger",
    "get_logger",
    "setup_logging",
]
