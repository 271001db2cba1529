"""Path-indexed filesystem API over the flat record store.

Directories are inferred from the ``directory`` field of stored files.
Every content-changing save and every delete of a live file first copies the
superseded record into the backup directory.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from core.filesystem.paths import (
    BACKUP_DIRECTORY,
    InvalidPathError,
    create_backup_path,
    get_directory,
    get_file_name,
    is_backup_name_of,
    normalize_directory,
    validate_file_path,
)
from storage.contracts import RecordStore, StoreError, StoreUnavailableError
from storage.models import DirectoryEntry, FileRecord, new_document_id, now_ms

logger = logging.getLogger(__name__)

_MAX_BACKUP_ATTEMPTS = 1000


@dataclass
class SaveResult:
    """Stored record plus any non-fatal backup warning."""

    record: FileRecord
    backup: FileRecord | None = None
    warnings: list[str] = field(default_factory=list)


@dataclass
class DeleteResult:
    path: str
    existed: bool
    backup: FileRecord | None = None
    warnings: list[str] = field(default_factory=list)


def coerce_content(content: Any) -> str:
    """Normalise a payload to the string form that gets stored."""
    if isinstance(content, str):
        return content
    if isinstance(content, (bytes, bytearray)):
        try:
            return bytes(content).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValueError(f"Binary content is not valid UTF-8: {exc}") from exc
    return json.dumps(content, indent=2, ensure_ascii=False, default=str)


def initial_content(path: str) -> str:
    """Starter content for a new file, chosen by directory and extension."""
    name = get_file_name(path)
    if name.endswith(".json"):
        template: dict[str, Any] = {}
        directory = get_directory(path)
        if directory == "/chats/":
            template = {"id": new_document_id(), "messages": []}
        elif directory == "/agents/":
            template = {
                "id": new_document_id(),
                "name": "New Agent",
                "configurations": {"model": "anthropic/claude-3-haiku"},
            }
        elif directory == "/secrets/":
            template = {"id": new_document_id(), "service": "New Service", "data": {}}
        return json.dumps(template, indent=2, ensure_ascii=False)
    if name.endswith((".txt", ".md")):
        return f"New file: {name}\n"
    return ""


class FileSystemAPI:
    """list/get/save/delete over hierarchical paths with backup-on-change."""

    def __init__(
        self,
        store: RecordStore,
        *,
        backup_directory: str = BACKUP_DIRECTORY,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self.backup_directory = normalize_directory(backup_directory)
        self._clock = clock

    @property
    def store(self) -> RecordStore:
        return self._store

    async def open(self) -> RecordStore:
        """Ensure the store is open; raises StoreUnavailableError otherwise."""
        try:
            return await self._store.open()
        except StoreUnavailableError:
            logger.error("Record store unavailable")
            raise

    def is_backup_path(self, path: str) -> bool:
        return get_directory(path).startswith(self.backup_directory)

    async def list_files(self, directory: str) -> list[DirectoryEntry]:
        directory = normalize_directory(directory)
        logger.debug("listFiles for %s", directory)
        store = await self.open()

        items: dict[str, DirectoryEntry] = {}
        for record in await store.get_all():
            if record.directory == directory:
                items[record.path] = DirectoryEntry(name=record.name, type="file", path=record.path)
            elif record.directory.startswith(directory):
                dir_name = record.directory[len(directory):].split("/")[0]
                if not dir_name:
                    continue
                dir_path = f"{directory}{dir_name}/"
                if dir_path not in items:
                    items[dir_path] = DirectoryEntry(name=dir_name, type="directory", path=dir_path)

        return sorted(items.values(), key=lambda entry: (entry.type != "directory", entry.name))

    async def get_file(self, path: str) -> FileRecord | None:
        logger.debug("getFile %s", path)
        store = await self.open()
        return await store.get(path)

    async def create_file(self, path: str, content: Any = None) -> SaveResult:
        """Save a new file; refuses to replace an existing one.

        Without ``content`` the file starts from ``initial_content(path)``.
        The backup directory only receives files through backups.
        """
        validate_file_path(path)
        if self.is_backup_path(path):
            raise InvalidPathError(f"Cannot create files in {self.backup_directory}: {path}")
        if await self.get_file(path) is not None:
            raise FileExistsError(f"File {path} already exists")
        if content is None:
            content = initial_content(path)
        return await self.save_file(path, content)

    async def save_file(self, path: str, content: Any) -> SaveResult:
        validate_file_path(path)
        logger.info("saveFile %s", path)
        store = await self.open()

        record = FileRecord(
            path=path,
            directory=get_directory(path),
            name=get_file_name(path),
            content=coerce_content(content),
            timestamp=self._clock(),
        )
        existing = await self._read_existing(store, path, "save")

        result = SaveResult(record=record)
        if existing is not None and existing.content != record.content and not self.is_backup_path(path):
            logger.info("Content changed for %s, creating backup", path)
            result.backup, warning = await self._write_backup(store, existing)
            if warning:
                result.warnings.append(f"{warning} Proceeding with save.")

        await store.put(record)
        logger.info("File %s saved", path)
        return result

    async def delete_file(self, path: str) -> DeleteResult:
        logger.info("deleteFile %s", path)
        store = await self.open()
        existing = await self._read_existing(store, path, "delete")

        result = DeleteResult(path=path, existed=existing is not None)
        if existing is not None and not self.is_backup_path(path):
            logger.info("Creating backup before deleting %s", path)
            result.backup, warning = await self._write_backup(store, existing)
            if warning:
                result.warnings.append(f"{warning} Proceeding with delete.")
        elif self.is_backup_path(path):
            logger.info("Deleting %s from backup (no backup of backup)", path)
        else:
            logger.info("File %s not found, no backup created before delete", path)

        # Issued even when the pre-read found nothing, in case that read failed transiently.
        await store.delete(path)
        logger.info("File %s deleted", path)
        return result

    async def list_backups(self, path: str) -> list[FileRecord]:
        """Backups made from ``path``, newest first."""
        file_name = get_file_name(path)
        store = await self.open()
        backups = [
            record
            for record in await store.get_all()
            if record.directory == self.backup_directory
            and is_backup_name_of(record.name, file_name)
        ]
        return sorted(backups, key=lambda record: (record.timestamp, record.name), reverse=True)

    async def _read_existing(self, store: RecordStore, path: str, action: str) -> FileRecord | None:
        try:
            return await store.get(path)
        except StoreError as exc:
            logger.warning("Could not fetch %s before %s: %s", path, action, exc)
            return None

    async def _write_backup(self, store: RecordStore, existing: FileRecord) -> tuple[FileRecord | None, str | None]:
        try:
            backup_path = await self._free_backup_path(store, existing)
            backup = FileRecord(
                path=backup_path,
                directory=self.backup_directory,
                name=get_file_name(backup_path),
                content=coerce_content(existing.content),
                timestamp=self._clock(),
            )
            await store.put(backup)
        except StoreError as exc:
            logger.warning("Error creating backup for %s: %s", existing.path, exc)
            return None, f"Failed to create backup for {existing.path}."
        logger.info("Backup created: %s", backup_path)
        return backup, None

    async def _free_backup_path(self, store: RecordStore, existing: FileRecord) -> str:
        for attempt in range(_MAX_BACKUP_ATTEMPTS):
            candidate = create_backup_path(existing, self.backup_directory, attempt)
            if await store.get(candidate) is None:
                return candidate
        raise StoreError(f"No free backup path for {existing.path}")
