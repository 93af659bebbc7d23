"""
Cache layer: entry format, key builder and the memory/SQLite stores.
"""

from __future__ import annotations

from .keys import DEFAULT_PREFIX, build_for_string, build_for_url
from .memory import MemoryCacheStore
from .sqlite import SQLiteCacheStore
from .store import (
    CacheEntry,
    CacheOpResult,
    CachePurgeResult,
    CacheReadResult,
    CacheStore,
    CacheWriteResult,
)

__all__ = [
    "DEFAULT_PREFIX",
    "CacheEntry",
    "CacheOpResult",
    "CachePurgeResult",
    "CacheReadResult",
    "CacheStore",
    "CacheWriteResult",
    "MemoryCacheStore",
    "SQLiteCacheStore",
    "build_for_string",
    "build_for_url",
]
