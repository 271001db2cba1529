from .contracts import RecordStore, StoreError, StoreUnavailableError
from .models import DirectoryEntry, FileRecord
from .runtime import build_record_store

__all__ = [
    "DirectoryEntry",
    "FileRecord",
    "RecordStore",
    "StoreError",
    "StoreUnavailableError",
    "build_record_store",
]
