"""Configuration for the LiveDB client."""

from __future__ import annotations

import dataclasses
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .exceptions import LiveDBConfigError
from .utils import DEFAULT_CHUNK_SIZE

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://link.thelocalrent.com"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _default_config_dir() -> Path:
    env_dir = os.environ.get("LIVEDB_CONFIG_DIR")
    if env_dir:
        return Path(env_dir)
    return Path.home() / ".config" / "pylivedb"


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise LiveDBConfigError(f"{name} must be a boolean, got {value!r}")


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise LiveDBConfigError(f"{name} must be an integer, got {value!r}") from e


@dataclass(frozen=True)
class LiveDBConfig:
    """Connection and behaviour settings for a LiveDB client.

    Timeouts are given in milliseconds.
    """

    base_url: str = DEFAULT_BASE_URL
    """API root, e.g. https://link.thelocalrent.com"""

    chunk_size: int = DEFAULT_CHUNK_SIZE
    """Default chunk size for chunked uploads (in bytes)"""

    connect_timeout: int = 30000
    receive_timeout: int = 60000
    send_timeout: int = 60000

    enable_logging: bool = False
    """Attach a debug handler to the pylivedb loggers"""

    enable_local_storage: bool = False
    """Cache GET responses locally and serve them when requests fail"""

    cache_dir: Path | None = None
    """Local cache directory (defaults to ~/.config/pylivedb/cache)"""

    def __post_init__(self) -> None:
        if not self.base_url:
            raise LiveDBConfigError("base_url must not be empty")
        if self.chunk_size <= 0:
            raise LiveDBConfigError(
                f"chunk_size must be positive, got {self.chunk_size}"
            )
        for name in ("connect_timeout", "receive_timeout", "send_timeout"):
            if getattr(self, name) <= 0:
                raise LiveDBConfigError(f"{name} must be positive")

    def copy_with(self, **changes: Any) -> LiveDBConfig:
        """Return a copy of this config with the given fields replaced."""
        return dataclasses.replace(self, **changes)

    @property
    def resolved_cache_dir(self) -> Path:
        """Directory used by the local response cache."""
        if self.cache_dir is not None:
            return Path(self.cache_dir)
        return _default_config_dir() / "cache"

    @classmethod
    def from_env(cls, **overrides: Any) -> LiveDBConfig:
        """Build a config from ``LIVEDB_*`` environment variables.

        Keyword arguments take precedence over the environment.

        Raises:
            LiveDBConfigError: If a variable holds a malformed value
        """
        values: dict[str, Any] = {}
        base_url = os.environ.get("LIVEDB_BASE_URL")
        if base_url:
            values["base_url"] = base_url
        chunk_size = os.environ.get("LIVEDB_CHUNK_SIZE")
        if chunk_size:
            values["chunk_size"] = _parse_int("LIVEDB_CHUNK_SIZE", chunk_size)
        logging_flag = os.environ.get("LIVEDB_ENABLE_LOGGING")
        if logging_flag is not None:
            values["enable_logging"] = _parse_bool(
                "LIVEDB_ENABLE_LOGGING", logging_flag
            )
        storage_flag = os.environ.get("LIVEDB_ENABLE_LOCAL_STORAGE")
        if storage_flag is not None:
            values["enable_local_storage"] = _parse_bool(
                "LIVEDB_ENABLE_LOCAL_STORAGE", storage_flag
            )
        values.update(overrides)
        return cls(**values)


DEFAULT_CONFIG = LiveDBConfig()


class Config:
    """Persistent settings shared between CLI sessions.

    Values are stored as JSON in ``~/.config/pylivedb/config.json``.
    Environment variables (``LIVEDB_TOKEN``, ``LIVEDB_BASE_URL``) take
    precedence over stored values.
    """

    def __init__(self, config_dir: Path | None = None):
        self._config_dir = config_dir

    @property
    def config_dir(self) -> Path:
        return self._config_dir or _default_config_dir()

    def get_config_path(self) -> Path:
        """Return the path of the settings file."""
        return self.config_dir / "config.json"

    def _load(self) -> dict[str, Any]:
        path = self.get_config_path()
        if not path.exists():
            return {}
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to read config file {path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, Any]) -> None:
        path = self.get_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        # The file holds a bearer token; create it owner-only
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        # Files created before this mode was applied keep their old one
        path.chmod(0o600)

    @property
    def token(self) -> str | None:
        return os.environ.get("LIVEDB_TOKEN") or self._load().get("token")

    @property
    def base_url(self) -> str:
        return (
            os.environ.get("LIVEDB_BASE_URL")
            or self._load().get("base_url")
            or DEFAULT_BASE_URL
        )

    def save_token(self, token: str) -> None:
        data = self._load()
        data["token"] = token
        self._save(data)

    def save_base_url(self, base_url: str) -> None:
        data = self._load()
        data["base_url"] = base_url
        self._save(data)

    def clear(self) -> bool:
        """Delete the settings file. Returns False if there was none."""
        path = self.get_config_path()
        if path.exists():
            path.unlink()
            return True
        return False

    def is_configured(self) -> bool:
        return bool(self.token)


config = Config()
