"""Freshness policy, request deduplication, durable cache and HTTP decoration."""

from .dedupe import RequestDeduplicator
from .policy import Category, FreshnessPolicy, FreshnessPolicyTable, to_http_directives
from .store import DurableCache, MemoryBackend, RedisBackend

__all__ = [
    "Category",
    "DurableCache",
    "FreshnessPolicy",
    "FreshnessPolicyTable",
    "MemoryBackend",
    "RedisBackend",
    "RequestDeduplicator",
    "to_http_directives"
]
