"""Response caching: stores, keys and freshness."""

from .freshness import freshness_lifetime, is_fresh, refresh_headers
from .keys import cache_key, normalize_url
from .store import CacheStore, FileCacheStore, MemoryCacheStore, default_cache_dir

__all__ = [
    "CacheStore",
    "FileCacheStore",
    "MemoryCacheStore",
    "cache_key",
    "default_cache_dir",
    "freshness_lifetime",
    "is_fresh",
    "normalize_url",
    "refresh_headers",
]
