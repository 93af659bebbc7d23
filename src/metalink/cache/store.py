"""
Storage-agnostic cache entry format, result values and the store protocol.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from metalink.models.enums import CachePayloadKind


def now_ms() -> int:
    return int(time.time() * 1000)


def _require_int(data: Dict[str, Any], key: str) -> int:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"CacheEntry.{key} must be an integer")
    return value


@dataclass(frozen=True)
class CacheEntry:
    """
    A cached payload with its creation time and TTL.

    ``ttl_ms <= 0`` asks the store to apply its default TTL; it never means
    "does not expire".
    """

    kind: CachePayloadKind
    created_at_ms: int
    ttl_ms: int
    payload: Dict[str, Any]

    @classmethod
    def create(cls, kind: CachePayloadKind, payload: Dict[str, Any], ttl_ms: int) -> CacheEntry:
        return cls(kind=kind, created_at_ms=now_ms(), ttl_ms=ttl_ms, payload=payload)

    def is_expired(self, at_ms: Optional[int] = None) -> bool:
        if self.ttl_ms <= 0:
            return True
        current = now_ms() if at_ms is None else at_ms
        return current > self.created_at_ms + self.ttl_ms

    def with_ttl(self, ttl_ms: int) -> CacheEntry:
        return replace(self, ttl_ms=ttl_ms)

    def with_default_ttl(self, default_ttl_ms: int) -> CacheEntry:
        return self if self.ttl_ms > 0 else self.with_ttl(default_ttl_ms)

    def to_json(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "createdAtMs": self.created_at_ms,
            "ttlMs": self.ttl_ms,
            "payload": self.payload,
        }

    @classmethod
    def from_json(cls, data: Any) -> CacheEntry:
        """Strict decode. Unknown kinds and wrong types raise ValueError."""
        if not isinstance(data, dict):
            raise ValueError("CacheEntry JSON must be an object")
        kind = data.get("kind")
        if not isinstance(kind, str):
            raise ValueError("CacheEntry.kind must be a string")
        try:
            payload_kind = CachePayloadKind(kind)
        except ValueError as e:
            raise ValueError(f"Unknown CacheEntry.kind: {kind}") from e
        payload = data.get("payload")
        if not isinstance(payload, dict):
            raise ValueError("CacheEntry.payload must be an object")
        return cls(
            kind=payload_kind,
            created_at_ms=_require_int(data, "createdAtMs"),
            ttl_ms=_require_int(data, "ttlMs"),
            payload=payload,
        )


@dataclass(frozen=True)
class CacheReadResult:
    entry: Optional[CacheEntry] = None
    error: Optional[BaseException] = field(default=None, compare=False)

    @property
    def is_hit(self) -> bool:
        return self.entry is not None and self.error is None

    @property
    def is_miss(self) -> bool:
        return self.entry is None and self.error is None

    @property
    def is_error(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class CacheWriteResult:
    ok: bool
    error: Optional[BaseException] = field(default=None, compare=False)


@dataclass(frozen=True)
class CacheOpResult:
    ok: bool
    error: Optional[BaseException] = field(default=None, compare=False)


@dataclass(frozen=True)
class CachePurgeResult:
    ok: bool
    purged: int = 0
    error: Optional[BaseException] = field(default=None, compare=False)


@runtime_checkable
class CacheStore(Protocol):
    """
    Key/value store for ``CacheEntry`` values.

    No method raises; failures are reported on the returned result so the
    caller can degrade to a miss.
    """

    async def read(self, key: str) -> CacheReadResult:
        ...

    async def write(self, key: str, entry: CacheEntry) -> CacheWriteResult:
        ...

    async def delete(self, key: str) -> CacheOpResult:
        ...

    async def clear(self) -> CacheOpResult:
        ...

    async def purge_expired(self) -> CachePurgeResult:
        ...

    async def close(self) -> None:
        ...
