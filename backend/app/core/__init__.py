"""
Core package containing configuration, database, security, and logging.
"""
from app.core.config import settings
from app.core.database import Base, DbSession, get_db_session
from app.core.logging import configure_logging, get_logger
from app.core.security import (
    create_access_token,
    decode_access_token,
    generate_download_token,
    verify_paymaya_signature,
)

__all__ = [
    "settings",
    "Base",
    "DbSession",
    "get_db_session",
    "configure_logging",
    "get_logger",
    "create_access_token",
    "decode_access_token",
    "generate_download_token",
    "verify_paymaya_signature",
]
