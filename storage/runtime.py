"""Runtime wiring helpers for the record store."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from storage.providers.sqlite import SQLiteRecordStore

if TYPE_CHECKING:
    from config.schema import NotevaultSettings


def build_record_store(
    settings: NotevaultSettings | None = None,
    *,
    db_path: str | Path | None = None,
) -> SQLiteRecordStore:
    """Build an unopened record store from settings or an explicit path.

    The caller owns the returned handle and passes it into FileSystemAPI.
    """
    if db_path is None:
        if settings is None:
            raise ValueError("build_record_store requires settings or db_path")
        db_path = settings.store.db_path
    return SQLiteRecordStore(db_path)
