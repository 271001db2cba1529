"""Storage contracts shared by record store providers."""

from __future__ import annotations

from typing import Protocol

from storage.models import FileRecord


class StoreError(RuntimeError):
    """A record store primitive failed at the driver level."""


class StoreUnavailableError(StoreError):
    """The record store could not be opened; dependent operations must not proceed."""


class RecordStore(Protocol):
    """Flat keyed store of FileRecords with a secondary index on directory."""

    async def open(self) -> RecordStore:
        """Open (or return the already-open) handle, creating schema and seed data on first use."""

    async def get_all(self) -> list[FileRecord]:
        """Return every stored record."""

    async def get(self, path: str) -> FileRecord | None:
        """Return the record at exactly ``path`` or None."""

    async def put(self, record: FileRecord) -> None:
        """Insert or replace the record keyed by ``record.path``."""

    async def delete(self, path: str) -> None:
        """Remove the record at ``path``; a missing key is not an error."""

    async def close(self) -> None:
        """Release the underlying connection."""
