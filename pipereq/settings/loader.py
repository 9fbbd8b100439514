"""Helpers for loading process-wide defaults from a TOML file."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..core.options import KNOWN_OPTIONS, set_default_options
from ..errors import ConfigError

DEFAULT_CONFIG_NAME = "pipereq.toml"
CONFIG_ENV_VAR = "PIPEREQ_CONFIG"


@dataclass(slots=True)
class HttpSettings:
    pool_timeout: int | None = None
    receive_timeout: int | None = None
    max_retries: int | None = None
    max_redirects: int | None = None
    retry_delay: float | None = None
    adapter: str | None = None
    user_agent: str | None = None


@dataclass(slots=True)
class CacheSettings:
    enabled: bool | None = None
    dir: Path | None = None


@dataclass(slots=True)
class AppConfig:
    http: HttpSettings = field(default_factory=HttpSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    headers: dict[str, str] = field(default_factory=dict)
    defaults: dict[str, Any] = field(default_factory=dict)
    source: Path | None = None

    def default_options(self) -> dict[str, Any]:
        """Flatten the file into an options mapping; unset values are left out."""
        options: dict[str, Any] = dict(self.defaults)
        for name in HttpSettings.__slots__:
            value = getattr(self.http, name)
            if value is not None:
                options[name] = value
        if self.cache.enabled is not None:
            options["cache"] = self.cache.enabled
        if self.cache.dir is not None:
            options["cache_dir"] = str(self.cache.dir)
        if self.headers:
            options["headers"] = dict(self.headers)
        return options


def _config_path(explicit: str | os.PathLike[str] | None = None) -> tuple[Path, bool]:
    """Return the candidate path and whether the caller insisted on it."""
    if explicit:
        return Path(explicit), True
    env_value = os.environ.get(CONFIG_ENV_VAR)
    if env_value:
        return Path(env_value), True
    return Path.cwd() / DEFAULT_CONFIG_NAME, False


def _load_toml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("rb") as fp:
        try:
            return tomllib.load(fp)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError("Malformed config file", details={"path": str(path)}, cause=exc) from exc


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{name}] must be a table", details={"found": type(section).__name__})
    return section


def _optional(section: dict[str, Any], key: str, cast: Any) -> Any:
    value = section.get(key)
    if value is None:
        return None
    try:
        return cast(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(
            f"Invalid value for '{key}'", details={"key": key, "value": repr(value)}, cause=exc
        ) from exc


def load_config(config_path: str | os.PathLike[str] | None = None) -> AppConfig:
    """Read the config file; a missing ``./pipereq.toml`` yields an empty config.

    An explicit path, or one named by ``$PIPEREQ_CONFIG``, must exist.
    """
    path, required = _config_path(config_path)
    if not required and not path.exists():
        return AppConfig()
    data = _load_toml(path)

    http_section = _section(data, "http")
    cache_section = _section(data, "cache")
    headers_section = _section(data, "headers")
    defaults_section = _section(data, "defaults")

    unknown = sorted(set(defaults_section) - KNOWN_OPTIONS)
    if unknown:
        raise ConfigError("Unknown options in [defaults]", details={"options": unknown})

    http = HttpSettings(
        pool_timeout=_optional(http_section, "pool_timeout", int),
        receive_timeout=_optional(http_section, "receive_timeout", int),
        max_retries=_optional(http_section, "max_retries", int),
        max_redirects=_optional(http_section, "max_redirects", int),
        retry_delay=_optional(http_section, "retry_delay", float),
        adapter=_optional(http_section, "adapter", str),
        user_agent=_optional(http_section, "user_agent", str),
    )
    cache_dir = _optional(cache_section, "dir", Path)
    if cache_dir is not None and not cache_dir.is_absolute():
        cache_dir = path.parent / cache_dir
    cache = CacheSettings(enabled=_optional(cache_section, "enabled", bool), dir=cache_dir)

    return AppConfig(
        http=http,
        cache=cache,
        headers={str(key): str(value) for key, value in headers_section.items()},
        defaults=dict(defaults_section),
        source=path,
    )


def apply_config(config: AppConfig) -> dict[str, Any]:
    """Install ``config`` as the process-wide defaults and return them."""
    options = config.default_options()
    set_default_options(options)
    return options
