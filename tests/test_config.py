"""Test configuration loading"""

from pathlib import Path

import pytest

from musics_client.core.config import load_config
from musics_client.core.exceptions import ConfigError


def _write(temp_dir, text):
    path = temp_dir / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:
    """Test YAML parsing, defaults and validation"""

    def test_defaults_without_file(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)

        config = load_config(use_env=False)

        assert config.api.base_url == "https://musics-system-2.onrender.com"
        assert config.api.timeout == 30.0
        assert config.cache.catalog_ttl == 300
        assert config.cache.users_ttl == 600
        assert config.player.default_volume == 0.7
        assert config.notifications.toast_duration == 5.0
        assert config.logging.level == "INFO"
        assert config.logging.directory is None
        assert config.storage.database_path.name == "state.db"

    def test_values_from_file(self, temp_dir):
        path = _write(temp_dir, (
            "api:\n"
            "  base_url: 'http://localhost:3000/'\n"
            "  timeout: 5\n"
            "cache:\n"
            "  catalog_ttl: 60\n"
            "storage:\n"
            f"  directory: '{temp_dir / 'state'}'\n"
            "logging:\n"
            "  level: debug\n"
        ))

        config = load_config(path, use_env=False)

        assert config.api.base_url == "http://localhost:3000"
        assert config.api.timeout == 5.0
        assert config.cache.catalog_ttl == 60.0
        assert config.cache.users_ttl == 600
        assert config.storage.directory == (temp_dir / "state").resolve()
        assert config.logging.level == "DEBUG"

    def test_missing_explicit_file(self, temp_dir):
        with pytest.raises(ConfigError, match="not found"):
            load_config(temp_dir / "nope.yaml", use_env=False)

    def test_empty_file_uses_defaults(self, temp_dir):
        config = load_config(_write(temp_dir, ""), use_env=False)
        assert config.cache.catalog_ttl == 300

    @pytest.mark.parametrize("text, field", [
        ("api:\n  base_url: ftp://x\n", "api.base_url"),
        ("api:\n  timeout: 0\n", "api.timeout"),
        ("cache:\n  users_ttl: -1\n", "cache.users_ttl"),
        ("player:\n  default_volume: 1.5\n", "player.default_volume"),
        ("logging:\n  level: LOUD\n", "logging.level"),
    ])
    def test_invalid_values(self, temp_dir, text, field):
        with pytest.raises(ConfigError) as exc_info:
            load_config(_write(temp_dir, text), use_env=False)
        assert exc_info.value.details["field"] == field

    def test_invalid_yaml(self, temp_dir):
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(_write(temp_dir, "api: [unclosed\n"), use_env=False)

    def test_section_must_be_mapping(self, temp_dir):
        with pytest.raises(ConfigError, match="Section 'cache'"):
            load_config(_write(temp_dir, "cache: 5\n"), use_env=False)

    def test_environment_overrides(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        monkeypatch.setenv("MUSICS_API_BASE", "https://staging.test")
        monkeypatch.setenv("MUSICS_LOG_LEVEL", "warning")
        monkeypatch.setenv("MUSICS_STATE_DIR", str(temp_dir / "env-state"))

        config = load_config()

        assert config.api.base_url == "https://staging.test"
        assert config.logging.level == "WARNING"
        assert config.storage.directory == Path(temp_dir / "env-state").resolve()
