"""
Persistent cache store on SQLite.

Entries are stored as JSON strings under prefixed keys in a single
``cache_entries`` table, so one database can hold several stores (or
unrelated tables) side by side.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import List, Optional, Union

import aiosqlite
import structlog

from metalink.exceptions import ClosedError

from .keys import DEFAULT_PREFIX
from .memory import DEFAULT_TTL_SECONDS
from .store import CacheEntry, CacheOpResult, CachePurgeResult, CacheReadResult, CacheWriteResult, now_ms

logger = structlog.get_logger(__name__)

DEFAULT_TABLE = "cache_entries"


class SQLiteCacheStore:
    """
    Cache store backed by ``aiosqlite``.

    Corrupt rows (malformed JSON, non-object JSON, invalid entries) are
    deleted when read and the decode failure is returned as the error.
    A connection passed in is caller-owned and left open on ``close()``.
    """

    def __init__(
        self,
        db_path: Union[str, Path, None] = None,
        *,
        connection: Optional[aiosqlite.Connection] = None,
        key_prefix: str = DEFAULT_PREFIX,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        table: str = DEFAULT_TABLE,
        wal_mode: bool = True,
    ) -> None:
        if db_path is None and connection is None:
            raise ValueError("SQLiteCacheStore needs a db_path or a connection")
        if not table.isidentifier():
            raise ValueError(f"Invalid table name: {table}")

        self.db_path = Path(db_path) if db_path is not None else None
        self.key_prefix = key_prefix
        self.default_ttl_ms = int(default_ttl * 1000)
        self.table = table
        self.wal_mode = wal_mode

        self._conn = connection
        self._owns_connection = connection is None
        self._init_lock = asyncio.Lock()
        self._initialized = False
        self._closed = False

    @classmethod
    async def open(cls, db_path: Union[str, Path], **kwargs) -> SQLiteCacheStore:
        store = cls(db_path, **kwargs)
        await store.initialize()
        return store

    @property
    def closed(self) -> bool:
        return self._closed

    async def initialize(self) -> None:
        """Open the connection (if owned) and create the table."""
        async with self._init_lock:
            if self._initialized:
                return
            if self._conn is None:
                assert self.db_path is not None
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                self._conn = await aiosqlite.connect(self.db_path)
                if self.wal_mode:
                    await self._conn.execute("PRAGMA journal_mode=WAL")
                await self._conn.execute("PRAGMA synchronous=NORMAL")
                await self._conn.execute("PRAGMA busy_timeout = 5000")

            await self._conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            await self._conn.commit()
            self._initialized = True
            logger.info("Initialized SQLite cache store", db_path=str(self.db_path), table=self.table)

    async def _connection(self) -> aiosqlite.Connection:
        if not self._initialized:
            await self.initialize()
        assert self._conn is not None
        return self._conn

    def _key(self, key: str) -> str:
        if not self.key_prefix or key.startswith(self.key_prefix):
            return key
        return self.key_prefix + key

    @staticmethod
    def _closed_error() -> ClosedError:
        return ClosedError("SQLiteCacheStore is closed")

    async def _delete_quietly(self, conn: aiosqlite.Connection, key: str) -> None:
        try:
            await conn.execute(f"DELETE FROM {self.table} WHERE key = ?", (key,))
            await conn.commit()
        except aiosqlite.Error as e:
            logger.warning("Failed to delete cache entry", key=key, error=str(e))

    async def read(self, key: str) -> CacheReadResult:
        if self._closed:
            return CacheReadResult(error=self._closed_error())

        k = self._key(key)
        try:
            conn = await self._connection()
            async with conn.execute(f"SELECT value FROM {self.table} WHERE key = ?", (k,)) as cursor:
                row = await cursor.fetchone()
        except Exception as e:
            logger.warning("Cache read failed", key=k, error=str(e))
            return CacheReadResult(error=e)

        if row is None:
            return CacheReadResult()

        try:
            decoded = json.loads(row[0])
            if not isinstance(decoded, dict):
                raise ValueError("Cached value is not a JSON object")
            entry = CacheEntry.from_json(decoded).with_default_ttl(self.default_ttl_ms)
        except Exception as e:
            logger.warning("Deleting corrupt cache entry", key=k, error=str(e))
            await self._delete_quietly(conn, k)
            return CacheReadResult(error=e)

        if entry.is_expired():
            await self._delete_quietly(conn, k)
            return CacheReadResult()
        return CacheReadResult(entry=entry)

    async def write(self, key: str, entry: CacheEntry) -> CacheWriteResult:
        if self._closed:
            return CacheWriteResult(ok=False, error=self._closed_error())

        k = self._key(key)
        entry = entry.with_default_ttl(self.default_ttl_ms)
        try:
            conn = await self._connection()
            if entry.is_expired():
                await conn.execute(f"DELETE FROM {self.table} WHERE key = ?", (k,))
            else:
                await conn.execute(
                    f"INSERT OR REPLACE INTO {self.table} (key, value) VALUES (?, ?)",
                    (k, json.dumps(entry.to_json(), separators=(",", ":"))),
                )
            await conn.commit()
            return CacheWriteResult(ok=True)
        except Exception as e:
            logger.warning("Cache write failed", key=k, error=str(e))
            return CacheWriteResult(ok=False, error=e)

    async def delete(self, key: str) -> CacheOpResult:
        if self._closed:
            return CacheOpResult(ok=False, error=self._closed_error())
        try:
            conn = await self._connection()
            await conn.execute(f"DELETE FROM {self.table} WHERE key = ?", (self._key(key),))
            await conn.commit()
            return CacheOpResult(ok=True)
        except Exception as e:
            return CacheOpResult(ok=False, error=e)

    async def clear(self) -> CacheOpResult:
        """Remove this store's keys only. An empty prefix removes everything."""
        if self._closed:
            return CacheOpResult(ok=False, error=self._closed_error())
        try:
            conn = await self._connection()
            if self.key_prefix:
                await conn.execute(
                    f"DELETE FROM {self.table} WHERE substr(key, 1, ?) = ?",
                    (len(self.key_prefix), self.key_prefix),
                )
            else:
                await conn.execute(f"DELETE FROM {self.table}")
            await conn.commit()
            return CacheOpResult(ok=True)
        except Exception as e:
            return CacheOpResult(ok=False, error=e)

    async def purge_expired(self) -> CachePurgeResult:
        """Delete expired and corrupt entries under this store's prefix."""
        if self._closed:
            return CachePurgeResult(ok=False, error=self._closed_error())
        try:
            conn = await self._connection()
            async with conn.execute(
                f"SELECT key, value FROM {self.table} WHERE substr(key, 1, ?) = ?",
                (len(self.key_prefix), self.key_prefix),
            ) as cursor:
                rows = await cursor.fetchall()

            at_ms = now_ms()
            doomed: List[str] = []
            for key, value in rows:
                try:
                    entry = CacheEntry.from_json(json.loads(value)).with_default_ttl(self.default_ttl_ms)
                except ValueError:
                    doomed.append(key)
                    continue
                if entry.is_expired(at_ms):
                    doomed.append(key)

            if doomed:
                await conn.executemany(f"DELETE FROM {self.table} WHERE key = ?", [(key,) for key in doomed])
                await conn.commit()
            logger.debug("Purged expired cache entries", purged=len(doomed))
            return CachePurgeResult(ok=True, purged=len(doomed))
        except Exception as e:
            logger.warning("Cache purge failed", error=str(e))
            return CachePurgeResult(ok=False, error=e)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._owns_connection and self._conn is not None:
            await self._conn.close()
        self._conn = None
