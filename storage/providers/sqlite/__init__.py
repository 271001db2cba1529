"""SQLite storage provider implementations."""

from .record_store import SQLiteRecordStore

__all__ = ["SQLiteRecordStore"]
