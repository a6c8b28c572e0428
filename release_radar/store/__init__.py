"""Release store SPI and implementations."""

from .base import ReleaseStore
from .mongo_store import MongoReleaseStore
from .sqlite_store import SQLiteReleaseStore
from .storage import SQLiteManager

__all__ = ["MongoReleaseStore", "ReleaseStore", "SQLiteManager", "SQLiteReleaseStore"]
