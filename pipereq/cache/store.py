"""Response stores addressed by cache key."""

from __future__ import annotations

import base64
import json
import os
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path

from ..core.context import ResponseContext
from ..core.headers import Headers
from ..utils.file_helper import atomic_write_text
from ..utils.logging import get_logger
from .freshness import STORED_AT

_LOGGER = get_logger(__name__)


def default_cache_dir() -> Path:
    base = os.environ.get("XDG_CACHE_HOME")
    root = Path(base) if base else Path.home() / ".cache"
    return root / "pipereq"


class CacheStore(ABC):
    """Key/value store for responses.

    Implementations must tolerate concurrent ``get``/``put``; racing writers
    may overwrite each other. ``get`` returns the response with its storage
    time in ``private["cache_stored_at"]``.
    """

    @abstractmethod
    def get(self, key: str) -> ResponseContext | None:
        """Return the stored response or ``None``."""

    @abstractmethod
    def put(self, key: str, response: ResponseContext) -> None:
        """Store ``response`` under ``key``."""


class MemoryCacheStore(CacheStore):
    def __init__(self) -> None:
        self._entries: dict[str, ResponseContext] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> ResponseContext | None:
        with self._lock:
            return self._entries.get(key)

    def put(self, key: str, response: ResponseContext) -> None:
        stamped = response.evolve(private={STORED_AT: time.time()})
        with self._lock:
            self._entries[key] = stamped

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class FileCacheStore(CacheStore):
    """One JSON document per key under ``cache_dir``.

    Only raw (bytes) bodies are stored; writes go through a temporary file
    and a rename, so readers never observe a partial entry.
    """

    def __init__(self, cache_dir: str | os.PathLike[str] | None = None) -> None:
        self._root = Path(cache_dir) if cache_dir else default_cache_dir()

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, key: str) -> Path:
        return self._root / f"{key}.json"

    def get(self, key: str) -> ResponseContext | None:
        path = self.path_for(key)
        try:
            with path.open("r", encoding="utf-8") as fp:
                data = json.load(fp)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as exc:
            _LOGGER.warning("Failed to read cache entry (%s): %s", path, exc)
            return None
        try:
            return ResponseContext(
                status=int(data["status"]),
                headers=Headers([(str(n), str(v)) for n, v in data["headers"]]),
                body=base64.b64decode(data["body"]),
                private={STORED_AT: float(data["stored_at"])},
            )
        except (KeyError, TypeError, ValueError) as exc:
            _LOGGER.warning("Discarding malformed cache entry (%s): %s", path, exc)
            return None

    def put(self, key: str, response: ResponseContext) -> None:
        if not isinstance(response.body, (bytes, bytearray)):
            _LOGGER.debug(
                "Skipping cache write for decoded body",
                extra={"event": "cache.skip", "key": key},
            )
            return
        payload = {
            "status": response.status,
            "headers": [[name, str(value)] for name, value in response.headers.items()],
            "body": base64.b64encode(bytes(response.body)).decode("ascii"),
            "stored_at": time.time(),
        }
        path = self.path_for(key)
        try:
            atomic_write_text(path, json.dumps(payload, ensure_ascii=False))
        except OSError as exc:
            _LOGGER.warning(
                "Failed to write cache entry (%s): %s",
                path,
                exc,
                extra={"event": "cache.store_failed", "key": key},
            )


__all__ = ["CacheStore", "FileCacheStore", "MemoryCacheStore", "default_cache_dir"]
