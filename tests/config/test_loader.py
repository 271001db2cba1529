"""Tests for config.loader module."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from config.loader import ConfigLoader, load_config
from config.schema import NotevaultSettings


@pytest.fixture
def temp_config_dirs(tmp_path, monkeypatch):
    """Create temporary config directories for testing."""
    user_home = tmp_path / "home"
    (user_home / ".notevault").mkdir(parents=True)

    project_root = tmp_path / "project"
    (project_root / ".notevault").mkdir(parents=True)

    monkeypatch.setenv("HOME", str(user_home))
    for var in ("NOTEVAULT_DB_PATH", "NOTEVAULT_API_KEY", "NOTEVAULT_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)

    return {"user_home": user_home, "project_root": project_root}


def _write(path: Path, data) -> None:
    path.write_text(json.dumps(data), encoding="utf-8")


class TestConfigLoader:
    def test_init(self, tmp_path):
        loader = ConfigLoader(workspace_root=str(tmp_path))
        assert loader.workspace_root == tmp_path.resolve()

    def test_init_no_workspace(self):
        assert ConfigLoader().workspace_root is None

    def test_packaged_defaults(self, temp_config_dirs):
        settings = load_config()

        assert isinstance(settings, NotevaultSettings)
        assert settings.store.db_path == temp_config_dirs["user_home"] / ".notevault" / "notevault.db"
        assert settings.store.backup_directory == "/backup/"
        assert settings.chat.endpoint == "https://api.vsegpt.ru/v1/chat/completions"
        assert settings.chat.history_limit == 10
        assert settings.logging.level == "WARNING"

    def test_user_then_project_override(self, temp_config_dirs):
        _write(
            temp_config_dirs["user_home"] / ".notevault" / "config.json",
            {"chat": {"history_limit": 4, "timeout": 5}},
        )
        _write(
            temp_config_dirs["project_root"] / ".notevault" / "config.json",
            {"chat": {"history_limit": 2}},
        )

        settings = load_config(workspace_root=temp_config_dirs["project_root"])

        assert settings.chat.history_limit == 2
        assert settings.chat.timeout == 5
        assert settings.chat.default_max_tokens == 1000

    def test_env_overrides_files(self, temp_config_dirs, monkeypatch, tmp_path):
        _write(temp_config_dirs["user_home"] / ".notevault" / "config.json", {"chat": {"api_key": "from-file"}})
        monkeypatch.setenv("NOTEVAULT_API_KEY", "from-env")
        monkeypatch.setenv("NOTEVAULT_DB_PATH", str(tmp_path / "env.db"))
        monkeypatch.setenv("NOTEVAULT_LOG_LEVEL", "debug")

        settings = load_config()

        assert settings.chat.api_key == "from-env"
        assert settings.store.db_path == tmp_path / "env.db"
        assert settings.logging.level == "DEBUG"

    def test_cli_overrides_win(self, temp_config_dirs, monkeypatch, tmp_path):
        monkeypatch.setenv("NOTEVAULT_DB_PATH", str(tmp_path / "env.db"))

        settings = load_config(cli_overrides={"store": {"db_path": str(tmp_path / "cli.db")}})

        assert settings.store.db_path == tmp_path / "cli.db"

    def test_env_var_expansion(self, temp_config_dirs, monkeypatch):
        monkeypatch.setenv("VAULT_KEY", "sk-expanded")
        _write(temp_config_dirs["user_home"] / ".notevault" / "config.json", {"chat": {"api_key": "${VAULT_KEY}"}})

        assert load_config().chat.api_key == "sk-expanded"

    def test_invalid_json_is_skipped(self, temp_config_dirs):
        (temp_config_dirs["user_home"] / ".notevault" / "config.json").write_text("{broken", encoding="utf-8")

        assert load_config().chat.history_limit == 10

    def test_non_object_file_is_skipped(self, temp_config_dirs):
        _write(temp_config_dirs["user_home"] / ".notevault" / "config.json", ["not", "a", "dict"])

        assert load_config().chat.history_limit == 10

    def test_invalid_value_raises(self, temp_config_dirs):
        _write(temp_config_dirs["user_home"] / ".notevault" / "config.json", {"chat": {"history_limit": 0}})

        with pytest.raises(ValidationError):
            load_config()

    def test_explicit_env_mapping(self, temp_config_dirs):
        loader = ConfigLoader(env={"NOTEVAULT_API_KEY": "  sk-map  "})

        assert loader.load().chat.api_key == "sk-map"


class TestDeepMerge:
    def test_nested_merge_and_none_skip(self):
        loader = ConfigLoader()
        result = loader._deep_merge(
            {"chat": {"timeout": 1, "history_limit": 3}},
            {"chat": {"timeout": None, "history_limit": 5}},
        )
        assert result == {"chat": {"timeout": 1, "history_limit": 5}}

    def test_remove_none_values(self):
        loader = ConfigLoader()
        assert loader._remove_none_values({"a": None, "b": {"c": None, "d": 1}}) == {"b": {"d": 1}}
