"""Configuration loading for procmail-logtool."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Any

import yaml

from .sources import DEFAULT_ENCODING


class ConfigError(Exception):
    """Raised when the configuration file cannot be parsed."""


_DEFAULT_CONFIG_ENV = "PROCMAIL_LOGTOOL_CONFIG"
_DEFAULT_CONFIG_PATH = Path("~/.config/procmail-logtool/config.yaml")
DEFAULT_LOG_FILE = Path("~/.procmail/log")


@dataclass(frozen=True)
class AppConfig:
    """In-memory representation of procmail-logtool configuration."""

    path: Path
    log_file: Path = field(default_factory=DEFAULT_LOG_FILE.expanduser)
    include_rotated: bool = True
    error_mode: bool = False
    encoding: str = DEFAULT_ENCODING

    @property
    def exists(self) -> bool:
        """Return ``True`` if the configuration file exists on disk."""

        return self.path.exists()


def default_config_path() -> Path:
    """Return the default config path, honoring the environment override."""

    env_value = os.environ.get(_DEFAULT_CONFIG_ENV)
    if env_value:
        return Path(env_value).expanduser()
    return _DEFAULT_CONFIG_PATH.expanduser()


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from ``path`` or the default location."""

    config_path = (path or default_config_path()).expanduser()

    if not config_path.exists():
        return AppConfig(path=config_path)

    try:
        with config_path.open("r", encoding="utf-8") as handle:
            raw: Any = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        message = f"Failed to parse YAML config {config_path}: {exc}"
        raise ConfigError(message) from exc
    except OSError as exc:
        message = f"Failed to read config {config_path}: {exc}"
        raise ConfigError(message) from exc

    if not isinstance(raw, dict):
        expected = type(raw).__name__
        message = (
            f"Expected a mapping at the top level of {config_path}, "
            f"got {expected}."
        )
        raise ConfigError(message)

    log_file = _coerce_path(raw.get("log_file"), config_path)
    include_rotated = _coerce_bool(
        raw, "include_rotated", True, config_path
    )
    error_mode = _coerce_bool(raw, "error_mode", False, config_path)
    encoding = raw.get("encoding", DEFAULT_ENCODING)

    if not isinstance(encoding, str):
        message = "Config key 'encoding' must be a string"
        raise ConfigError(f"{message} (file: {config_path}).")

    return AppConfig(
        path=config_path,
        log_file=log_file or DEFAULT_LOG_FILE.expanduser(),
        include_rotated=include_rotated,
        error_mode=error_mode,
        encoding=encoding,
    )


def _coerce_path(value: Any, config_path: Path) -> Path | None:
    if value is None:
        return None
    if isinstance(value, str):
        return Path(value).expanduser()
    typename = type(value).__name__
    raise ConfigError(
        f"Expected a string path in configuration, got {typename} "
        f"(file: {config_path})."
    )


def _coerce_bool(
    raw: dict[str, Any],
    key: str,
    default: bool,
    config_path: Path,
) -> bool:
    value = raw.get(key, default)
    if not isinstance(value, bool):
        message = f"Config key '{key}' must be true or false"
        raise ConfigError(f"{message} (file: {config_path}).")
    return value
