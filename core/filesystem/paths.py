"""Path helpers for the virtual filesystem.

All paths are absolute and ``/``-separated. Directories are virtual: they are
never stored, and a directory path always carries a trailing slash.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Any

from storage.models import FileRecord

ROOT = "/"
BACKUP_DIRECTORY = "/backup/"

_BACKUP_STAMP = r"\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}-\d{3}Z(?:-\d+)?"


class InvalidPathError(ValueError):
    """Path cannot address a file record."""


def get_file_name(path: Any) -> str:
    if not path or not isinstance(path, str):
        return ""
    return path.split("/")[-1]


def get_directory(path: Any) -> str:
    """Parent directory of ``path``, including the trailing slash."""
    if not path or not isinstance(path, str):
        return ROOT
    last_slash = path.rfind("/")
    if last_slash <= 0:
        return ROOT
    if last_slash == len(path) - 1:
        return path
    return path[: last_slash + 1]


def normalize_directory(directory: str) -> str:
    if not directory.endswith("/"):
        directory += "/"
    if directory == "//":
        directory = ROOT
    return directory


def validate_file_path(path: Any) -> str:
    if not path or not isinstance(path, str):
        raise InvalidPathError(f"Invalid file path: {path!r}")
    if not path.startswith("/"):
        raise InvalidPathError(f"File path must be absolute: {path}")
    if path.endswith("/"):
        raise InvalidPathError(f"File path must not end with '/': {path}")
    return path


def split_extension(name: str) -> tuple[str, str]:
    """Split at the last dot: ``a.tar.gz`` -> (``a.tar``, ``.gz``)."""
    base, dot, ext = name.rpartition(".")
    if not dot:
        return name, ""
    return base, f".{ext}"


def format_backup_timestamp(timestamp_ms: int) -> str:
    """ISO-8601 UTC instant with ``:`` and ``.`` replaced by ``-``."""
    dt = datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC)
    iso = f"{dt.strftime('%Y-%m-%dT%H:%M:%S')}.{timestamp_ms % 1000:03d}Z"
    return iso.replace(":", "-").replace(".", "-")


def create_backup_path(record: FileRecord, backup_directory: str = BACKUP_DIRECTORY, attempt: int = 0) -> str:
    base, ext = split_extension(record.name)
    suffix = format_backup_timestamp(record.timestamp)
    if attempt:
        suffix = f"{suffix}-{attempt}"
    return f"{normalize_directory(backup_directory)}{base}_{suffix}{ext}"


def is_backup_name_of(backup_name: str, file_name: str) -> bool:
    """True when ``backup_name`` has the shape ``<base>_<timestamp>[-N]<ext>`` for ``file_name``."""
    base, ext = split_extension(file_name)
    pattern = f"{re.escape(base)}_{_BACKUP_STAMP}{re.escape(ext)}"
    return re.fullmatch(pattern, backup_name) is not None
