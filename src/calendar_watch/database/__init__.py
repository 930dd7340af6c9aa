"""Database module for persisted synchronization state.

This module provides:
- SQLAlchemy async database connection
- The key-value table backing the state store
"""

from calendar_watch.database.connection import (
    close_db,
    create_tables,
    get_db,
    init_db,
)
from calendar_watch.database.models import Base, KeyValueEntry

__all__ = [
    # Connection
    "get_db",
    "init_db",
    "close_db",
    "create_tables",
    # Models
    "Base",
    "KeyValueEntry",
]
