"""
Database helpers for the tracker backend (engine creation, schema, seed data).
"""

from anitrack_backend.db.connection import DatabaseConnectionError, create_db_engine
from anitrack_backend.db.schema import init_db

__all__ = [
    "DatabaseConnectionError",
    "create_db_engine",
    "init_db",
]
