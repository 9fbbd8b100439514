"""Settings package exports."""

from .loader import (
    CONFIG_ENV_VAR,
    AppConfig,
    CacheSettings,
    HttpSettings,
    apply_config,
    load_config,
)

__all__ = [
    "AppConfig",
    "CONFIG_ENV_VAR",
    "CacheSettings",
    "HttpSettings",
    "apply_config",
    "load_config",
]
