"""Cached access to on-chain vesting data.

Every read goes through the same pipeline:

    dedupe(key) -> durable cache -> data source (with retry)

- FRESH entry: returned as HIT, the source is not touched
- STALE entry: returned as STALE at once; a detached refresh overwrites it
- no servable entry: fetched synchronously, stored, returned as MISS

A failed fetch with nothing servable raises SourceUnavailableError so callers
can fall back to simulation inputs.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from ..caching.dedupe import RequestDeduplicator
from ..caching.keys import DEFAULT_PREFIX, global_key, project_key, user_key
from ..caching.policy import Category, FreshnessPolicy, FreshnessPolicyTable, HttpDirectives, to_http_directives
from ..caching.store import DurableCache, EntryState, MemoryBackend, RedisBackend
from ..errors import SourceUnavailableError
from .models import GlobalState, ProjectConfig, UserClaim

logger = logging.getLogger(__name__)


class CacheStatus(Enum):
    """Where a returned value came from."""
    HIT = "HIT"
    STALE = "STALE"
    MISS = "MISS"


@dataclass(frozen=True)
class CachedValue:
    """A data value with its cache provenance."""
    value: Any
    status: CacheStatus
    stored_at: float  # Epoch seconds the value was fetched from the source
    policy: FreshnessPolicy

    @property
    def is_stale(self) -> bool:
        return self.status is CacheStatus.STALE

    @property
    def http_directives(self) -> HttpDirectives:
        return to_http_directives(self.policy)


class VestingDataService:
    """Read-through cache over a DataSource."""

    def __init__(
        self,
        source,
        cache: Optional[DurableCache] = None,
        policies: Optional[FreshnessPolicyTable] = None,
        deduplicator: Optional[RequestDeduplicator] = None,
        key_prefix: str = DEFAULT_PREFIX,
        retry_attempts: int = 2
    ):
        """
        Initialize the service.

        Args:
            source: DataSource implementation
            cache: Durable cache (defaults to an in-memory one)
            policies: Freshness policy table (defaults to the built-in table)
            deduplicator: Request deduplicator (defaults to a 2 s window)
            key_prefix: Prefix for every cache key
            retry_attempts: Source attempts per fetch
        """
        self.source = source
        self.cache = cache if cache is not None else DurableCache()
        self.policies = policies if policies is not None else FreshnessPolicyTable()
        self.deduplicator = deduplicator if deduplicator is not None else RequestDeduplicator()
        self.key_prefix = key_prefix
        self.retry_attempts = max(1, retry_attempts)
        self._refreshing: Dict[str, asyncio.Task] = {}
        self._background: Set[asyncio.Task] = set()

    async def project_config(self, project_id: str) -> CachedValue:
        """Season config for a project."""
        return await self._read_through(
            project_key(project_id, self.key_prefix),
            Category.PROJECT_CONFIG,
            lambda: self.source.fetch_project_config(project_id),
            ProjectConfig
        )

    async def global_state(self, project_id: str) -> CachedValue:
        """Loyalty pool and claim totals for a project."""
        return await self._read_through(
            global_key(project_id, self.key_prefix),
            Category.GLOBAL_STATE,
            lambda: self.source.fetch_global_state(project_id),
            GlobalState
        )

    async def user_claim(self, project_id: str, wallet_address: str, max_token_amount: float) -> CachedValue:
        """Claim state of one wallet. Never served stale."""
        return await self._read_through(
            user_key(project_id, wallet_address, self.key_prefix),
            Category.USER_CLAIM,
            lambda: self.source.fetch_user_claim(project_id, wallet_address, max_token_amount),
            UserClaim
        )

    async def invalidate(self, project_id: str, wallet_address: Optional[str] = None) -> None:
        """Drop cached project data, and the wallet's claim state when given."""
        await self.cache.invalidate(project_key(project_id, self.key_prefix))
        await self.cache.invalidate(global_key(project_id, self.key_prefix))
        if wallet_address is not None:
            await self.cache.invalidate(user_key(project_id, wallet_address, self.key_prefix))

    async def drain(self) -> None:
        """Wait for scheduled background refreshes to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def close(self) -> None:
        await self.drain()
        await self.cache.close()
        aclose = getattr(self.source, "aclose", None)
        if aclose is not None:
            await aclose()

    async def _read_through(
        self,
        key: str,
        category: Category,
        fetch: Callable[[], Awaitable[Any]],
        model
    ) -> CachedValue:
        return await self.deduplicator.dedupe(key, lambda: self._lookup(key, category, fetch, model))

    async def _lookup(self, key: str, category: Category, fetch, model) -> CachedValue:
        policy = self.policies.resolve(category)
        entry = await self.cache.get(key)

        if entry is not None:
            value = model.from_dict(entry.value)
            if entry.state(self.cache.now()) is EntryState.FRESH:
                logger.debug("Cache HIT %s", key)
                return CachedValue(value, CacheStatus.HIT, entry.stored_at, policy)
            logger.info("Cache STALE %s, refreshing in background", key)
            self._schedule_refresh(key, policy, fetch)
            return CachedValue(value, CacheStatus.STALE, entry.stored_at, policy)

        logger.debug("Cache MISS %s", key)
        try:
            value = await self._fetch_with_retry(key, fetch)
        except Exception as e:
            logger.error("Source unavailable for %s and no cached data: %s", key, e)
            raise SourceUnavailableError(key, str(e)) from e
        stored = await self._store(key, policy, value)
        return CachedValue(value, CacheStatus.MISS, stored.stored_at, policy)

    async def _fetch_with_retry(self, key: str, fetch):
        last_error: Optional[Exception] = None
        for attempt in range(1, self.retry_attempts + 1):
            try:
                return await fetch()
            except Exception as e:
                last_error = e
                logger.warning("Fetch %s attempt %d/%d failed: %s", key, attempt, self.retry_attempts, e)
        raise last_error

    async def _store(self, key: str, policy: FreshnessPolicy, value):
        return await self.cache.set(key, value.to_dict(), policy.fresh_seconds, policy.store_seconds)

    def _schedule_refresh(self, key: str, policy: FreshnessPolicy, fetch) -> None:
        if key in self._refreshing:
            return
        task = asyncio.get_running_loop().create_task(self._refresh(key, policy, fetch))
        self._refreshing[key] = task
        self._background.add(task)
        task.add_done_callback(lambda t: self._refresh_done(key, t))

    def _refresh_done(self, key: str, task: asyncio.Task) -> None:
        self._background.discard(task)
        if self._refreshing.get(key) is task:
            del self._refreshing[key]

    async def _refresh(self, key: str, policy: FreshnessPolicy, fetch) -> None:
        # The stale entry stays in place on failure; the next read retries
        try:
            value = await self._fetch_with_retry(key, fetch)
            await self._store(key, policy, value)
        except Exception as e:
            logger.warning("Background refresh of %s failed, serving stale data: %s", key, e)
            return
        logger.debug("Background refresh of %s stored", key)


def build_service(config, source=None) -> VestingDataService:
    """
    Wire a VestingDataService from a loaded `Config`.

    Args:
        config: Config object
        source: DataSource (defaults to the HTTP API source)

    Returns:
        VestingDataService
    """
    if source is None:
        from .source import ApiDataSource
        source = ApiDataSource.from_config(config)

    settings = config.durable_cache
    memory = MemoryBackend(max_entries=settings.memory_max_entries)
    if settings.redis_enabled:
        logger.info("Durable cache: redis at %s with memory fallback", settings.redis_url)
        cache = DurableCache(
            RedisBackend.from_url(settings.redis_url, settings.socket_timeout_seconds),
            fallback=memory
        )
    else:
        logger.info("Durable cache: in-memory (cold after restart)")
        cache = DurableCache(memory)

    return VestingDataService(
        source,
        cache=cache,
        policies=FreshnessPolicyTable.from_config(config),
        deduplicator=RequestDeduplicator(
            window_seconds=config.dedup.window_seconds,
            enabled=config.dedup.enabled
        ),
        key_prefix=settings.key_prefix,
        retry_attempts=config.data_source.retry_attempts
    )
