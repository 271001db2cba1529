"""SQLite record store for the virtual filesystem, backed by aiosqlite."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from collections.abc import Callable
from pathlib import Path

import aiosqlite

from storage.contracts import StoreError, StoreUnavailableError
from storage.models import FileRecord
from storage.seed import initial_records

logger = logging.getLogger(__name__)

TABLE_NAME = "files"
DIRECTORY_INDEX = "idx_files_directory"
MEMORY_DB = ":memory:"


def _is_duplicate_key(exc: sqlite3.IntegrityError) -> bool:
    errorname = getattr(exc, "sqlite_errorname", "")
    if errorname in {"SQLITE_CONSTRAINT_PRIMARYKEY", "SQLITE_CONSTRAINT_UNIQUE"}:
        return True
    return "UNIQUE constraint failed" in str(exc)


class SQLiteRecordStore:
    """Single-table keyed store: one row per file path, indexed by directory.

    The connection is opened lazily and cached for the lifetime of the store.
    Schema and seed data are created only when the table does not exist yet.
    """

    def __init__(
        self,
        db_path: str | Path,
        seed_factory: Callable[[], list[FileRecord]] | None = initial_records,
    ) -> None:
        self.db_path = db_path if db_path == MEMORY_DB else Path(db_path)
        self._seed_factory = seed_factory
        self._conn: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def __aenter__(self) -> SQLiteRecordStore:
        return await self.open()

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def open(self) -> SQLiteRecordStore:
        if self._conn is not None:
            return self
        async with self._lock:
            if self._conn is not None:
                return self
            logger.info("Opening record store at %s", self.db_path)
            try:
                conn = await self._connect()
            except (sqlite3.Error, OSError) as exc:
                logger.error("Record store open failed for %s: %s", self.db_path, exc)
                raise StoreUnavailableError(f"Failed to open record store at {self.db_path}: {exc}") from exc

            try:
                await self._ensure_schema(conn)
            except sqlite3.Error as exc:
                await conn.close()
                logger.error("Record store schema creation failed for %s: %s", self.db_path, exc)
                raise StoreUnavailableError(f"Failed to initialise record store at {self.db_path}: {exc}") from exc

            self._conn = conn
            logger.info("Record store %s ready", self.db_path)
            return self

    async def close(self) -> None:
        if self._conn is None:
            return
        await self._conn.close()
        self._conn = None

    async def get_all(self) -> list[FileRecord]:
        conn = self._require_conn()
        try:
            async with conn.execute(f"SELECT * FROM {TABLE_NAME}") as cursor:
                rows = await cursor.fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Error reading file list: {exc}") from exc
        return [self._row_to_record(row) for row in rows]

    async def get_by_directory(self, directory: str) -> list[FileRecord]:
        """Records whose parent directory is exactly ``directory`` (index lookup)."""
        conn = self._require_conn()
        try:
            async with conn.execute(
                f"SELECT * FROM {TABLE_NAME} WHERE directory = ? ORDER BY name",
                (directory,),
            ) as cursor:
                rows = await cursor.fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Error reading directory {directory}: {exc}") from exc
        return [self._row_to_record(row) for row in rows]

    async def get(self, path: str) -> FileRecord | None:
        conn = self._require_conn()
        try:
            async with conn.execute(f"SELECT * FROM {TABLE_NAME} WHERE path = ?", (path,)) as cursor:
                row = await cursor.fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Error getting file {path}: {exc}") from exc
        return self._row_to_record(row) if row else None

    async def put(self, record: FileRecord) -> None:
        conn = self._require_conn()
        try:
            await conn.execute(
                f"""
                INSERT INTO {TABLE_NAME} (path, directory, name, content, timestamp)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(path) DO UPDATE SET
                    directory = excluded.directory,
                    name = excluded.name,
                    content = excluded.content,
                    timestamp = excluded.timestamp
                """,
                (record.path, record.directory, record.name, record.content, record.timestamp),
            )
            await conn.commit()
        except sqlite3.Error as exc:
            await conn.rollback()
            raise StoreError(f"Save transaction error for {record.path}: {exc}") from exc

    async def delete(self, path: str) -> None:
        conn = self._require_conn()
        try:
            await conn.execute(f"DELETE FROM {TABLE_NAME} WHERE path = ?", (path,))
            await conn.commit()
        except sqlite3.Error as exc:
            await conn.rollback()
            raise StoreError(f"Delete error for {path}: {exc}") from exc

    async def ensure_present(self, record: FileRecord) -> bool:
        """Insert ``record`` unless its path is already taken.

        Returns True when the record was inserted, False when it already existed.
        """
        conn = self._require_conn()
        inserted = await self._insert_if_absent(conn, record)
        await conn.commit()
        return inserted

    async def _connect(self) -> aiosqlite.Connection:
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(str(self.db_path))
        conn.row_factory = aiosqlite.Row
        try:
            await conn.execute("PRAGMA journal_mode=WAL")
            await conn.execute("PRAGMA synchronous=NORMAL")
        except sqlite3.Error:
            # @@@close-on-pragma-fail - the aiosqlite worker thread is non-daemon.
            await conn.close()
            raise
        return conn

    async def _ensure_schema(self, conn: aiosqlite.Connection) -> None:
        async with conn.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
            (TABLE_NAME,),
        ) as cursor:
            exists = await cursor.fetchone() is not None
        if exists:
            logger.debug("Table %s already exists", TABLE_NAME)
            return

        logger.info("Creating table %s with index %s", TABLE_NAME, DIRECTORY_INDEX)
        # @@@seed-in-schema-tx - table, index and seed rows land together or not at all.
        await conn.execute("BEGIN")
        try:
            await conn.execute(
                f"""
                CREATE TABLE {TABLE_NAME} (
                    path TEXT PRIMARY KEY,
                    directory TEXT NOT NULL,
                    name TEXT NOT NULL,
                    content TEXT NOT NULL,
                    timestamp INTEGER NOT NULL
                )
                """
            )
            await conn.execute(f"CREATE INDEX {DIRECTORY_INDEX} ON {TABLE_NAME}(directory)")
            if self._seed_factory is not None:
                for record in self._seed_factory():
                    await self._insert_if_absent(conn, record)
            await conn.commit()
        except sqlite3.Error:
            await conn.rollback()
            raise
        logger.info("Initial data added to %s", TABLE_NAME)

    @staticmethod
    async def _insert_if_absent(conn: aiosqlite.Connection, record: FileRecord) -> bool:
        try:
            await conn.execute(
                f"INSERT INTO {TABLE_NAME} (path, directory, name, content, timestamp) VALUES (?, ?, ?, ?, ?)",
                (record.path, record.directory, record.name, record.content, record.timestamp),
            )
        except sqlite3.IntegrityError as exc:
            if not _is_duplicate_key(exc):
                logger.error("Error adding %s: %s", record.path, exc)
                raise
            logger.warning("File %s already exists, skipping", record.path)
            return False
        logger.debug("Added %s", record.path)
        return True

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StoreUnavailableError("Record store is not open. Call open() first.")
        return self._conn

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> FileRecord:
        return FileRecord(
            path=row["path"],
            directory=row["directory"],
            name=row["name"],
            content=row["content"],
            timestamp=int(row["timestamp"]),
        )
