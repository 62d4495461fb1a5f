"""
Database connection and session management.

This module provides async SQLAlchemy engine configuration and the session
manager used by the booking service.
"""

from .connection import (
    DatabaseConfig,
    check_connection,
    close_engine,
    create_engine,
    get_database_url,
    wait_for_database,
)
from .session import (
    SessionManager,
    get_session_manager,
    initialize_session_manager,
    is_transient_error,
)

__all__ = [
    # Connection utilities
    "DatabaseConfig",
    "create_engine",
    "get_database_url",
    "check_connection",
    "close_engine",
    "wait_for_database",
    # Session management
    "SessionManager",
    "initialize_session_manager",
    "get_session_manager",
    "is_transient_error",
]
