"""Storage layer — SQLite database access and schema management."""

from vulnfeed.storage.connection import get_connection
from vulnfeed.storage.schema import init_db

__all__ = ["get_connection", "init_db"]
