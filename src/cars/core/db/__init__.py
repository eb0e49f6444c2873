"""Database utilities - engine and session."""

from src.cars.core.db.engine import dispose_engine, get_engine, sync_database_url
from src.cars.core.db.session import get_session

__all__ = [
    "dispose_engine",
    "get_engine",
    "sync_database_url",
    "get_session",
]
