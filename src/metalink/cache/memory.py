"""
In-process LRU cache store.
"""

from __future__ import annotations

from collections import OrderedDict

import structlog

from metalink.exceptions import ClosedError

from .keys import DEFAULT_PREFIX
from .store import CacheEntry, CacheOpResult, CachePurgeResult, CacheReadResult, CacheWriteResult, now_ms

logger = structlog.get_logger(__name__)

DEFAULT_TTL_SECONDS = 4 * 60 * 60
DEFAULT_MAX_ENTRIES = 500


class MemoryCacheStore:
    """
    ``OrderedDict`` used as an LRU: reads move an entry to the most-recent
    end, writes evict from the least-recent end while over ``max_entries``.
    ``max_entries == 0`` keeps nothing.
    """

    def __init__(
        self,
        key_prefix: str = DEFAULT_PREFIX,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ) -> None:
        self.key_prefix = key_prefix
        self.default_ttl_ms = int(default_ttl * 1000)
        self.max_entries = max(max_entries, 0)
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._closed = False

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self._key(key) in self._entries

    @property
    def closed(self) -> bool:
        return self._closed

    def _key(self, key: str) -> str:
        if not self.key_prefix or key.startswith(self.key_prefix):
            return key
        return self.key_prefix + key

    @staticmethod
    def _closed_error() -> ClosedError:
        return ClosedError("MemoryCacheStore is closed")

    async def read(self, key: str) -> CacheReadResult:
        if self._closed:
            return CacheReadResult(error=self._closed_error())

        k = self._key(key)
        entry = self._entries.get(k)
        if entry is None:
            return CacheReadResult()

        entry = entry.with_default_ttl(self.default_ttl_ms)
        if entry.is_expired():
            del self._entries[k]
            return CacheReadResult()

        self._entries.move_to_end(k)
        return CacheReadResult(entry=entry)

    async def write(self, key: str, entry: CacheEntry) -> CacheWriteResult:
        if self._closed:
            return CacheWriteResult(ok=False, error=self._closed_error())

        k = self._key(key)
        entry = entry.with_default_ttl(self.default_ttl_ms)
        if entry.is_expired():
            self._entries.pop(k, None)
            return CacheWriteResult(ok=True)

        self._entries.pop(k, None)
        self._entries[k] = entry
        self._evict()
        return CacheWriteResult(ok=True)

    def _evict(self) -> None:
        if self.max_entries <= 0:
            self._entries.clear()
            return
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted cache entry", key=evicted)

    async def delete(self, key: str) -> CacheOpResult:
        if self._closed:
            return CacheOpResult(ok=False, error=self._closed_error())
        self._entries.pop(self._key(key), None)
        return CacheOpResult(ok=True)

    async def clear(self) -> CacheOpResult:
        if self._closed:
            return CacheOpResult(ok=False, error=self._closed_error())
        self._entries.clear()
        return CacheOpResult(ok=True)

    async def purge_expired(self) -> CachePurgeResult:
        if self._closed:
            return CachePurgeResult(ok=False, error=self._closed_error())
        at_ms = now_ms()
        expired = [
            key
            for key, entry in self._entries.items()
            if entry.with_default_ttl(self.default_ttl_ms).is_expired(at_ms)
        ]
        for key in expired:
            del self._entries[key]
        return CachePurgeResult(ok=True, purged=len(expired))

    async def close(self) -> None:
        if self._closed:
            return
        self._entries.clear()
        self._closed = True
