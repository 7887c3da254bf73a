"""Tests for configuration loading."""

from pathlib import Path

import pytest

from offline_posts.config import (
    DEFAULT_BASE_URL,
    DEFAULT_TIMEOUT_MS,
    CacheConfig,
    SyncConfig,
    TimeoutConfig,
)
from offline_posts.exceptions import ConfigurationError


class TestTimeoutConfig:
    """Tests for TimeoutConfig."""

    def test_defaults(self) -> None:
        """Every phase defaults to 15 seconds."""
        timeouts = TimeoutConfig()

        assert timeouts.connect_ms == DEFAULT_TIMEOUT_MS == 15000
        assert timeouts.socket_ms == 15000
        assert timeouts.request_ms == 15000

    def test_uniform(self) -> None:
        """Timeouts can be set as a unit."""
        timeouts = TimeoutConfig.uniform(2500)

        assert (timeouts.connect_ms, timeouts.socket_ms, timeouts.request_ms) == (2500, 2500, 2500)

    def test_per_phase_overrides(self) -> None:
        """Individual overrides apply on top of the unit value."""
        timeouts = TimeoutConfig().with_overrides(
            {"timeout_ms": 3000, "connect_timeout_ms": 500}
        )

        assert timeouts.connect_ms == 500
        assert timeouts.socket_ms == 3000
        assert timeouts.request_ms == 3000

    @pytest.mark.parametrize("value", ["abc", 0, -5])
    def test_invalid_timeout(self, value) -> None:
        with pytest.raises(ConfigurationError):
            TimeoutConfig.uniform(value)


class TestSyncConfig:
    """Tests for SyncConfig sources."""

    def test_defaults(self) -> None:
        config = SyncConfig()

        assert config.remote.base_url == DEFAULT_BASE_URL
        assert config.cache.schema_version == 1
        assert config.cache.is_memory is False

    def test_memory_cache(self) -> None:
        assert CacheConfig(db_path=":memory:").is_memory is True

    def test_from_env(self, monkeypatch) -> None:
        """Environment variables override defaults."""
        monkeypatch.setenv("OFFLINE_POSTS_BASE_URL", "http://localhost:3000/")
        monkeypatch.setenv("OFFLINE_POSTS_TIMEOUT_MS", "4000")
        monkeypatch.setenv("OFFLINE_POSTS_SOCKET_TIMEOUT_MS", "1000")
        monkeypatch.setenv("OFFLINE_POSTS_DB_PATH", ":memory:")
        monkeypatch.setenv("OFFLINE_POSTS_SCHEMA_VERSION", "3")

        config = SyncConfig.from_env()

        assert config.remote.base_url == "http://localhost:3000"
        assert config.remote.timeouts == TimeoutConfig(
            connect_ms=4000, socket_ms=1000, request_ms=4000
        )
        assert config.cache.is_memory
        assert config.cache.schema_version == 3

    def test_from_env_invalid_number(self, monkeypatch) -> None:
        monkeypatch.setenv("OFFLINE_POSTS_REQUEST_TIMEOUT_MS", "soon")

        with pytest.raises(ConfigurationError) as exc_info:
            SyncConfig.from_env()

        assert exc_info.value.field == "request_timeout_ms"

    def test_from_file(self, tmp_path: Path) -> None:
        """YAML settings file is read section by section."""
        settings = tmp_path / "settings.yaml"
        settings.write_text(
            "remote:\n"
            "  base_url: https://posts.example.com\n"
            "  timeout_ms: 8000\n"
            "cache:\n"
            f"  db_path: {tmp_path / 'cache.db'}\n"
        )

        config = SyncConfig.from_file(settings)

        assert config.remote.base_url == "https://posts.example.com"
        assert config.remote.timeouts == TimeoutConfig.uniform(8000)
        assert config.cache.db_path == tmp_path / "cache.db"

    def test_from_file_rejects_non_mapping(self, tmp_path: Path) -> None:
        settings = tmp_path / "settings.yaml"
        settings.write_text("- just\n- a list\n")

        with pytest.raises(ConfigurationError):
            SyncConfig.from_file(settings)

    def test_load_without_file(self, tmp_path: Path) -> None:
        """A missing settings file falls back to defaults."""
        config = SyncConfig.load(tmp_path / "missing.yaml")

        assert config == SyncConfig()

    def test_load_env_overrides_file(self, tmp_path: Path, monkeypatch) -> None:
        settings = tmp_path / "settings.yaml"
        settings.write_text("remote:\n  base_url: https://from-file.example.com\n")
        monkeypatch.setenv("OFFLINE_POSTS_BASE_URL", "https://from-env.example.com")

        config = SyncConfig.load(settings)

        assert config.remote.base_url == "https://from-env.example.com"
