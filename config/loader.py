"""notevault configuration loader.

Configuration priority (highest to lowest):
1. CLI overrides
2. Environment variables (NOTEVAULT_DB_PATH, NOTEVAULT_API_KEY, NOTEVAULT_LOG_LEVEL)
3. Project config (.notevault/config.json in workspace)
4. User config (~/.notevault/config.json)
5. System defaults (config/defaults/config.json)
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from config.schema import NotevaultSettings

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".notevault"
CONFIG_FILE_NAME = "config.json"

# env var -> (group, key)
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "NOTEVAULT_DB_PATH": ("store", "db_path"),
    "NOTEVAULT_API_KEY": ("chat", "api_key"),
    "NOTEVAULT_LOG_LEVEL": ("logging", "level"),
}


class ConfigLoader:
    """Three-tier JSON config merge for notevault."""

    def __init__(self, workspace_root: str | Path | None = None, env: Mapping[str, str] | None = None):
        self.workspace_root = Path(workspace_root).resolve() if workspace_root else None
        self._system_defaults_dir = Path(__file__).parent / "defaults"
        self._env = env if env is not None else os.environ

    def load(self, cli_overrides: dict[str, Any] | None = None) -> NotevaultSettings:
        """Load configuration with three-tier merge plus env and CLI overrides."""
        final_config = self._deep_merge(
            self._load_system_defaults(),
            self._load_user_config(),
            self._load_project_config(),
            self._load_env_overrides(),
        )
        if cli_overrides:
            final_config = self._deep_merge(final_config, cli_overrides)

        final_config = self._expand_env_vars(final_config)
        final_config = self._remove_none_values(final_config)
        return NotevaultSettings(**final_config)

    # ── Internal helpers ──

    def _load_system_defaults(self) -> dict[str, Any]:
        return self._load_json(self._system_defaults_dir / CONFIG_FILE_NAME)

    def _load_user_config(self) -> dict[str, Any]:
        return self._load_json(Path.home() / CONFIG_DIR_NAME / CONFIG_FILE_NAME)

    def _load_project_config(self) -> dict[str, Any]:
        if not self.workspace_root:
            return {}
        return self._load_json(self.workspace_root / CONFIG_DIR_NAME / CONFIG_FILE_NAME)

    def _load_env_overrides(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for var, (group, key) in _ENV_OVERRIDES.items():
            value = self._env.get(var)
            if value is not None and value.strip():
                result.setdefault(group, {})[key] = value.strip()
        return result

    @staticmethod
    def _load_json(path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Skipping unreadable config file %s: %s", path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Skipping config file %s: top level must be an object", path)
            return {}
        return data

    def _deep_merge(self, *dicts: dict[str, Any]) -> dict[str, Any]:
        """Deep merge multiple dictionaries. Later dicts override earlier ones."""
        result: dict[str, Any] = {}
        for d in dicts:
            for key, value in d.items():
                if key not in result:
                    result[key] = value
                elif value is None:
                    continue
                elif isinstance(value, dict) and isinstance(result[key], dict):
                    result[key] = self._deep_merge(result[key], value)
                else:
                    result[key] = value
        return result

    def _expand_env_vars(self, obj: Any) -> Any:
        """Recursively expand ${VAR} and ~ in string values."""
        if isinstance(obj, dict):
            return {k: self._expand_env_vars(v) for k, v in obj.items()}
        if isinstance(obj, list):
            return [self._expand_env_vars(v) for v in obj]
        if isinstance(obj, str):
            return os.path.expandvars(os.path.expanduser(obj))
        return obj

    def _remove_none_values(self, obj: Any) -> Any:
        """Recursively remove None values to allow Pydantic defaults."""
        if isinstance(obj, dict):
            return {k: self._remove_none_values(v) for k, v in obj.items() if v is not None}
        if isinstance(obj, list):
            return [self._remove_none_values(v) for v in obj if v is not None]
        return obj


def load_config(
    workspace_root: str | Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> NotevaultSettings:
    """Convenience function to load configuration."""
    return ConfigLoader(workspace_root=workspace_root).load(cli_overrides=cli_overrides)
