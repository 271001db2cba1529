"""Configuration schema for notevault using Pydantic.

Three groups: the record store, the chat completion client and logging.
Values are merged from packaged defaults, user and project JSON files by
``config.loader`` before they reach these models.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

DEFAULT_DB_PATH = Path.home() / ".notevault" / "notevault.db"
DEFAULT_ENDPOINT = "https://api.vsegpt.ru/v1/chat/completions"

# ============================================================================
# Store Configuration
# ============================================================================


class StoreConfig(BaseModel):
    """Record store location and reserved namespaces."""

    db_path: Path = Field(DEFAULT_DB_PATH, description="SQLite database file (':memory:' for ephemeral)")
    backup_directory: str = Field("/backup/", description="Reserved directory for superseded copies")

    @field_validator("db_path", mode="before")
    @classmethod
    def expand_db_path(cls, v: str | Path) -> str | Path:
        if isinstance(v, str) and v != ":memory:":
            return Path(v).expanduser()
        return v

    @field_validator("backup_directory")
    @classmethod
    def normalize_backup_directory(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"backup_directory must be absolute: {v}")
        return v if v.endswith("/") else f"{v}/"


# ============================================================================
# Chat Configuration
# ============================================================================


class ChatConfig(BaseModel):
    """Chat completion endpoint and transcript defaults."""

    endpoint: str = Field(DEFAULT_ENDPOINT, description="Chat-completions URL")
    api_key: str | None = Field(None, description="Bearer token (falls back to /secrets/api_keys.json)")
    timeout: float = Field(60.0, gt=0, description="HTTP timeout in seconds")
    history_limit: int = Field(10, gt=0, description="Messages of history sent with each request")
    default_temperature: float = Field(0.7, ge=0.0, le=2.0, description="Used when the agent omits temperature")
    default_max_tokens: int = Field(1000, gt=0, description="Used when the agent omits max_tokens")
    app_title: str = Field("notevault", description="Sent as the X-Title header")


# ============================================================================
# Logging Configuration
# ============================================================================


class LoggingConfig(BaseModel):
    level: str = Field("WARNING", description="Root log level")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level


# ============================================================================
# Main Settings
# ============================================================================


class NotevaultSettings(BaseModel):
    """Main notevault configuration.

    Configuration priority (highest to lowest):
    1. CLI overrides
    2. Environment variables (NOTEVAULT_DB_PATH, NOTEVAULT_API_KEY, NOTEVAULT_LOG_LEVEL)
    3. Project config (.notevault/config.json)
    4. User config (~/.notevault/config.json)
    5. System defaults (config/defaults/config.json)
    """

    store: StoreConfig = Field(default_factory=StoreConfig, description="Record store")
    chat: ChatConfig = Field(default_factory=ChatConfig, description="Chat client")
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging")
