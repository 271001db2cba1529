"""Virtual filesystem over the record store."""

from core.filesystem.api import DeleteResult, FileSystemAPI, SaveResult, coerce_content, initial_content
from core.filesystem.paths import (
    BACKUP_DIRECTORY,
    InvalidPathError,
    create_backup_path,
    get_directory,
    get_file_name,
    is_backup_name_of,
    normalize_directory,
)

__all__ = [
    "BACKUP_DIRECTORY",
    "DeleteResult",
    "FileSystemAPI",
    "InvalidPathError",
    "SaveResult",
    "coerce_content",
    "create_backup_path",
    "get_directory",
    "get_file_name",
    "initial_content",
    "is_backup_name_of",
    "normalize_directory",
]
