"""Adapter registry."""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict

from ..errors import ConfigError
from .base import Adapter, pool_options
from .browser import BrowserAdapter
from .replay import ReplayAdapter
from .requests_adapter import RequestsAdapter
from .urllib_adapter import UrllibAdapter

ADAPTER_REGISTRY: Dict[str, Callable[[], Adapter]] = {
    UrllibAdapter.name: UrllibAdapter,
    RequestsAdapter.name: RequestsAdapter,
    BrowserAdapter.name: BrowserAdapter,
}

_instances: Dict[str, Adapter] = {}
_instances_lock = threading.Lock()


def register_adapter(name: str, builder: Callable[[], Adapter]) -> None:
    with _instances_lock:
        ADAPTER_REGISTRY[name.lower()] = builder
        stale = _instances.pop(name.lower(), None)
    if stale is not None:
        stale.close()


def get_adapter(spec: Any) -> Adapter:
    """Resolve the ``adapter`` option: an instance, or a registered name shared process-wide."""
    if isinstance(spec, Adapter):
        return spec
    key = str(spec or UrllibAdapter.name).lower()
    with _instances_lock:
        adapter = _instances.get(key)
        if adapter is None:
            try:
                builder = ADAPTER_REGISTRY[key]
            except KeyError as exc:
                raise ConfigError(
                    f"Unknown adapter '{spec}'. Registered: {sorted(ADAPTER_REGISTRY)}"
                ) from exc
            adapter = builder()
            _instances[key] = adapter
    return adapter


def close_adapters() -> None:
    with _instances_lock:
        adapters = list(_instances.values())
        _instances.clear()
    for adapter in adapters:
        adapter.close()


__all__ = [
    "ADAPTER_REGISTRY",
    "Adapter",
    "BrowserAdapter",
    "ReplayAdapter",
    "RequestsAdapter",
    "UrllibAdapter",
    "close_adapters",
    "get_adapter",
    "pool_options",
    "register_adapter",
]
