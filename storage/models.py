"""Shared storage domain models: provider-neutral data types."""

from __future__ import annotations

import time
import uuid
from dataclasses import asdict, dataclass
from typing import Any, Literal

EntryType = Literal["file", "directory"]


@dataclass
class FileRecord:
    """One stored file, addressed by its absolute path.

    ``directory`` is the denormalized parent path (always ends in ``/``) and
    ``timestamp`` is the last-write time in epoch milliseconds.
    """

    path: str
    directory: str
    name: str
    content: str
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DirectoryEntry:
    """Listing item derived from a scan; never persisted."""

    name: str
    type: EntryType
    path: str

    @property
    def is_dir(self) -> bool:
        return self.type == "directory"


def now_ms() -> int:
    return time.time_ns() // 1_000_000


def new_document_id() -> str:
    return f"id_{now_ms()}_{uuid.uuid4().hex[:7]}"
