"""Durable cache - keyed store with per-key fresh/stale expiry.

Backends:
- RedisBackend: shared across processes and restarts (redis.asyncio)
- MemoryBackend: bounded LRU map (cachetools) scoped to the process lifetime

Entries are msgpack-encoded with their timestamps so every backend reports the
same FRESH / STALE / EXPIRED view. The backend TTL equals the stale horizon, so
an expired entry is also evicted by the store itself. When the Redis backend
fails, reads and writes fall through to the in-memory fallback.
"""

import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Tuple

import msgpack
from cachetools import LRUCache
from redis import asyncio as aioredis
from redis.exceptions import RedisError

from ..errors import CacheBackendError

logger = logging.getLogger(__name__)


class EntryState(Enum):
    """Freshness state of a cache entry at a given time."""
    FRESH = "fresh"
    STALE = "stale"
    EXPIRED = "expired"


@dataclass(frozen=True)
class CacheEntry:
    """A cached value with its freshness horizons (epoch seconds)."""
    key: str
    value: Any
    stored_at: float
    fresh_until: float
    stale_until: float

    def state(self, now: float) -> EntryState:
        """Classify the entry at time `now`."""
        if now < self.fresh_until:
            return EntryState.FRESH
        if now < self.stale_until:
            return EntryState.STALE
        return EntryState.EXPIRED

    def age(self, now: float) -> float:
        """Seconds since the entry was stored."""
        return now - self.stored_at

    def pack(self) -> bytes:
        return msgpack.packb({
            'value': self.value,
            'stored_at': self.stored_at,
            'fresh_until': self.fresh_until,
            'stale_until': self.stale_until,
        }, use_bin_type=True)

    @classmethod
    def unpack(cls, key: str, payload: bytes) -> 'CacheEntry':
        data = msgpack.unpackb(payload, raw=False)
        return cls(
            key=key,
            value=data['value'],
            stored_at=data['stored_at'],
            fresh_until=data['fresh_until'],
            stale_until=data['stale_until']
        )


class MemoryBackend:
    """Bounded in-memory store. Contents are lost on restart."""

    name = "memory"

    def __init__(self, max_entries: int = 10_000, clock: Callable[[], float] = time.time):
        self._store: LRUCache = LRUCache(maxsize=max_entries)
        self._clock = clock

    def __len__(self) -> int:
        return len(self._store)

    async def read(self, key: str) -> Optional[bytes]:
        item: Optional[Tuple[bytes, float]] = self._store.get(key)
        if item is None:
            return None
        payload, expires_at = item
        if self._clock() >= expires_at:
            self._store.pop(key, None)
            return None
        return payload

    async def write(self, key: str, payload: bytes, ttl_seconds: int) -> None:
        self._store[key] = (payload, self._clock() + ttl_seconds)

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def close(self) -> None:
        self._store.clear()


class RedisBackend:
    """Redis store. Errors surface as CacheBackendError."""

    name = "redis"

    def __init__(self, client: aioredis.Redis):
        self._client = client

    @classmethod
    def from_url(cls, url: str, socket_timeout: float = 2.0) -> 'RedisBackend':
        return cls(aioredis.Redis.from_url(
            url,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout
        ))

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except (RedisError, OSError):
            return False

    async def read(self, key: str) -> Optional[bytes]:
        try:
            return await self._client.get(key)
        except (RedisError, OSError) as e:
            raise CacheBackendError(f"GET {key} failed: {e}") from e

    async def write(self, key: str, payload: bytes, ttl_seconds: int) -> None:
        try:
            await self._client.set(key, payload, ex=ttl_seconds)
        except (RedisError, OSError) as e:
            raise CacheBackendError(f"SET {key} failed: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except (RedisError, OSError) as e:
            raise CacheBackendError(f"DEL {key} failed: {e}") from e

    async def close(self) -> None:
        await self._client.aclose()


class DurableCache:
    """Key/value cache with fresh and stale horizons per entry."""

    def __init__(
        self,
        backend=None,
        fallback: Optional[MemoryBackend] = None,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize the cache.

        Args:
            backend: Primary backend (defaults to a MemoryBackend)
            fallback: In-memory backend used when the primary backend fails
            clock: Wall clock in epoch seconds (overridable for testing)
        """
        self._clock = clock
        self.backend = backend if backend is not None else MemoryBackend(clock=clock)
        self.fallback = fallback
        self.fallback_uses = 0

    def now(self) -> float:
        return self._clock()

    async def get(self, key: str) -> Optional[CacheEntry]:
        """
        Return the entry for `key` if it is still servable (FRESH or STALE).

        With a fallback configured, the newer of the two copies wins and is
        written back to the primary backend, so writes made during an outage
        are not shadowed by an older primary entry after recovery.

        Returns:
            CacheEntry, or None when absent or expired
        """
        entry = self._decode(key, await self._call('read', key))
        if self._has_fallback():
            shadow = self._decode(key, await self.fallback.read(key))
            if shadow is not None and (entry is None or shadow.stored_at > entry.stored_at):
                entry = shadow
                await self._restore(shadow)
        if entry is None:
            return None
        if entry.state(self._clock()) is EntryState.EXPIRED:
            await self.invalidate(key)
            return None
        return entry

    async def set(self, key: str, value: Any, fresh_seconds: float, stale_seconds: float) -> CacheEntry:
        """
        Store `value` fresh for `fresh_seconds` and servable until `stale_seconds`.

        Both horizons are measured from now. A stale horizon shorter than the
        fresh one is raised to it; an entry with no servable lifetime is not stored.
        The fallback, when configured, is always written too.

        Returns:
            The stored entry
        """
        now = self._clock()
        fresh_seconds = max(0.0, fresh_seconds)
        stale_seconds = max(fresh_seconds, stale_seconds)
        entry = CacheEntry(
            key=key,
            value=value,
            stored_at=now,
            fresh_until=now + fresh_seconds,
            stale_until=now + stale_seconds
        )
        ttl = math.ceil(stale_seconds)
        if ttl > 0:
            payload = entry.pack()
            await self._call('write', key, payload, ttl)
            if self._has_fallback():
                await self.fallback.write(key, payload, ttl)
        return entry

    async def invalidate(self, key: str) -> None:
        """Remove `key` from the backend and the fallback."""
        await self._call('delete', key)
        if self._has_fallback():
            await self.fallback.delete(key)

    async def close(self) -> None:
        await self.backend.close()
        if self._has_fallback():
            await self.fallback.close()

    def _has_fallback(self) -> bool:
        return self.fallback is not None and self.fallback is not self.backend

    @staticmethod
    def _decode(key: str, payload: Optional[bytes]) -> Optional[CacheEntry]:
        if payload is None:
            return None
        return CacheEntry.unpack(key, payload)

    async def _restore(self, entry: CacheEntry) -> None:
        ttl = math.ceil(entry.stale_until - self._clock())
        if ttl <= 0:
            return
        logger.info("Restoring %s to %s from memory fallback", entry.key, self.backend.name)
        await self._call('write', entry.key, entry.pack(), ttl)

    async def _call(self, op: str, *args):
        try:
            return await getattr(self.backend, op)(*args)
        except CacheBackendError as e:
            if self.fallback is None:
                raise
            self.fallback_uses += 1
            logger.warning("Cache backend %s unavailable, using memory fallback: %s", self.backend.name, e)
            return await getattr(self.fallback, op)(*args)
