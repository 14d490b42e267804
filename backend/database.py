"""
Database connection module: SQLite key-value backend.

Provides connect/disconnect lifecycle and get_database() accessor.
Storage code uses get_database() to read and write JSON records
backed by a single SQLite file.

Typical usage:
    from database import get_database
    db = get_database()
    profiles = await db.get("vivica_profiles_v2")
"""

import logging
from typing import Optional

from config import get_settings
from kv_store import KeyValueStore

logger = logging.getLogger(__name__)

# ============================================================
# Global database instance
# ============================================================
_database: Optional[KeyValueStore] = None


async def connect_db(db_path: Optional[str] = None) -> KeyValueStore:
    """Initialize the SQLite key-value store.

    Called once during application startup (main.py lifespan).
    Creates the database file if it doesn't exist.
    """
    global _database

    path = db_path or str(get_settings().database_path)
    logger.info(f"Connecting to SQLite database: {path}")

    _database = KeyValueStore(path)
    await _database.connect()
    return _database


async def close_db() -> None:
    """Close the database connection gracefully.

    Called during application shutdown.
    """
    global _database
    if _database:
        await _database.close()
        _database = None
        logger.info("Database connection closed")


def get_database() -> KeyValueStore:
    """Get the database instance.

    Raises:
        RuntimeError: If connect_db() hasn't been called yet.
    """
    if _database is None:
        raise RuntimeError("Database not initialized. Call connect_db() first.")
    return _database
