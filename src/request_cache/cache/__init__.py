"""SQLite persistence for cached responses.

This package provides :class:`CacheStore`, which owns every interaction with
the ``requests`` table: schema bootstrap, freshness-aware lookup by identity,
and supersede-by-replacement of an identity's row.

The store is consumed by :class:`~request_cache.fetcher.CachedFetcher` and
:class:`~request_cache.async_fetcher.AsyncCachedFetcher`.
"""

from request_cache.cache.store import MEMORY, CacheStore

__all__ = ["CacheStore", "MEMORY"]
