"""
Configuration for the offline posts data layer.

Settings can be given directly, read from environment variables, or
loaded from a YAML settings file:

    ```yaml
    remote:
      base_url: "https://jsonplaceholder.typicode.com"
      timeout_ms: 15000          # applies to connect, socket and request
      connect_timeout_ms: 5000   # optional per-phase override
    cache:
      db_path: "~/.offline_posts/posts_cache.db"
      schema_version: 1
    ```

Environment Variables:
    OFFLINE_POSTS_BASE_URL: Remote base URL
    OFFLINE_POSTS_TIMEOUT_MS: Connect, socket and request timeout as a unit
    OFFLINE_POSTS_CONNECT_TIMEOUT_MS: Connection establishment timeout
    OFFLINE_POSTS_SOCKET_TIMEOUT_MS: Socket read timeout
    OFFLINE_POSTS_REQUEST_TIMEOUT_MS: Overall request timeout
    OFFLINE_POSTS_DB_PATH: Cache database path (":memory:" for in-process only)
    OFFLINE_POSTS_SCHEMA_VERSION: Cache schema version
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError

DEFAULT_BASE_URL = "https://jsonplaceholder.typicode.com"
DEFAULT_TIMEOUT_MS = 15000
DEFAULT_HOME = Path.home() / ".offline_posts"
DEFAULT_DB_PATH = DEFAULT_HOME / "posts_cache.db"
DEFAULT_SETTINGS_PATH = DEFAULT_HOME / "settings.yaml"
SCHEMA_VERSION = 1

ENV_PREFIX = "OFFLINE_POSTS_"


def _positive_int(name: str, value: Any) -> int:
    """Parse a strictly positive integer setting."""
    try:
        parsed = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(name, "must be an integer", str(value)) from e
    if parsed <= 0:
        raise ConfigurationError(name, "must be positive", str(value))
    return parsed


@dataclass(frozen=True)
class TimeoutConfig:
    """Timeout budget for a single remote call, in milliseconds.

    Attributes:
        connect_ms: Connection establishment timeout
        socket_ms: Maximum wait between socket reads
        request_ms: Overall request timeout
    """

    connect_ms: int = DEFAULT_TIMEOUT_MS
    socket_ms: int = DEFAULT_TIMEOUT_MS
    request_ms: int = DEFAULT_TIMEOUT_MS

    @classmethod
    def uniform(cls, timeout_ms: int) -> TimeoutConfig:
        """Use the same timeout for every phase."""
        timeout_ms = _positive_int("timeout_ms", timeout_ms)
        return cls(connect_ms=timeout_ms, socket_ms=timeout_ms, request_ms=timeout_ms)

    def with_overrides(self, values: Mapping[str, Any]) -> TimeoutConfig:
        """Apply ``timeout_ms`` then per-phase overrides from a mapping."""
        result = self
        if values.get("timeout_ms") is not None:
            result = TimeoutConfig.uniform(values["timeout_ms"])

        overrides = {}
        for key, attr in (
            ("connect_timeout_ms", "connect_ms"),
            ("socket_timeout_ms", "socket_ms"),
            ("request_timeout_ms", "request_ms"),
        ):
            if values.get(key) is not None:
                overrides[attr] = _positive_int(key, values[key])
        return replace(result, **overrides) if overrides else result


@dataclass(frozen=True)
class RemoteConfig:
    """Settings for the HTTP remote source."""

    base_url: str = DEFAULT_BASE_URL
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)


@dataclass(frozen=True)
class CacheConfig:
    """Settings for the local cache store.

    Attributes:
        db_path: SQLite database file, or ":memory:"
        schema_version: Layout version; a mismatch recreates the table
    """

    db_path: str | Path = DEFAULT_DB_PATH
    schema_version: int = SCHEMA_VERSION

    @property
    def is_memory(self) -> bool:
        return str(self.db_path) == ":memory:"


@dataclass(frozen=True)
class SyncConfig:
    """Top-level configuration composed at process start."""

    remote: RemoteConfig = field(default_factory=RemoteConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], base: SyncConfig | None = None) -> SyncConfig:
        """Build configuration from a nested mapping, starting from ``base``.

        Keys that are absent keep the base value.
        """
        base = base or cls()
        remote_data = data.get("remote") or {}
        cache_data = data.get("cache") or {}

        remote = RemoteConfig(
            base_url=str(remote_data.get("base_url") or base.remote.base_url).rstrip("/"),
            timeouts=base.remote.timeouts.with_overrides(remote_data),
        )

        db_path: str | Path = base.cache.db_path
        if cache_data.get("db_path"):
            raw_path = str(cache_data["db_path"])
            db_path = raw_path if raw_path == ":memory:" else Path(raw_path).expanduser()

        schema_version = base.cache.schema_version
        if cache_data.get("schema_version") is not None:
            schema_version = _positive_int("schema_version", cache_data["schema_version"])

        return cls(
            remote=remote,
            cache=CacheConfig(db_path=db_path, schema_version=schema_version),
        )

    @classmethod
    def from_env(cls, base: SyncConfig | None = None) -> SyncConfig:
        """Create configuration from environment variables."""

        def env(name: str) -> str | None:
            return os.environ.get(f"{ENV_PREFIX}{name}") or None

        return cls.from_mapping(
            {
                "remote": {
                    "base_url": env("BASE_URL"),
                    "timeout_ms": env("TIMEOUT_MS"),
                    "connect_timeout_ms": env("CONNECT_TIMEOUT_MS"),
                    "socket_timeout_ms": env("SOCKET_TIMEOUT_MS"),
                    "request_timeout_ms": env("REQUEST_TIMEOUT_MS"),
                },
                "cache": {
                    "db_path": env("DB_PATH"),
                    "schema_version": env("SCHEMA_VERSION"),
                },
            },
            base=base,
        )

    @classmethod
    def from_file(cls, config_path: Path) -> SyncConfig:
        """Load configuration from a YAML settings file."""
        content = config_path.read_text()
        data = yaml.safe_load(content) or {}
        if not isinstance(data, dict):
            raise ConfigurationError(str(config_path), "settings file must contain a mapping")
        return cls.from_mapping(data)

    @classmethod
    def load(cls, config_path: Path | None = None) -> SyncConfig:
        """Load the settings file (if present), then apply environment overrides.

        Args:
            config_path: Path to settings.yaml. Defaults to ~/.offline_posts/settings.yaml
        """
        path = config_path or DEFAULT_SETTINGS_PATH
        base = cls.from_file(path) if path.exists() else cls()
        return cls.from_env(base=base)
