"""Asynchronous fetcher -- mirrors :class:`~request_cache.fetcher.CachedFetcher`.

:class:`AsyncCachedFetcher` honours the same contract as the blocking fetcher
but can be awaited from inside an event loop. The SQLite store is blocking,
so its calls run on a worker thread via :func:`asyncio.to_thread`; the
network call awaits :class:`~request_cache.transport.AsyncTransport`.

The only suspension points are the storage read, the network call and the
storage write. Overlapping calls for the same identity may all miss and all
fetch; the store still ends with exactly one row for that identity.
"""

from __future__ import annotations

import asyncio
import time
from typing import Optional

from request_cache.cache import CacheStore
from request_cache.fetcher import Clock, network_entry, persist, request_headers, validate_ttl
from request_cache.models import DEFAULT_TTL_SECONDS, Entry, Identity
from request_cache.output import get_output
from request_cache.transport import AsyncTransport


class AsyncCachedFetcher:
    """Asyncio counterpart of :class:`~request_cache.fetcher.CachedFetcher`.

    Args:
        store: Where entries are looked up and persisted. Shared safely with
            other fetchers and threads.
        transport: Performs the network call on a miss.
        clock: Returns the current Unix time; whole seconds are used.

    Example::

        async with AsyncTransport() as transport:
            fetcher = AsyncCachedFetcher(store, transport)
            entry = await fetcher.fetch("http://example.com", ttl_seconds=60)
    """

    def __init__(
        self,
        store: CacheStore,
        transport: AsyncTransport,
        clock: Clock = time.time,
    ) -> None:
        self._store = store
        self._transport = transport
        self._clock = clock

    @property
    def store(self) -> CacheStore:
        return self._store

    async def fetch(
        self,
        url: str,
        method: str = "GET",
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        force_refresh: bool = False,
        user_agent: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Entry:
        """Return the response for ``(url, method)``, from cache if live.

        Arguments, return value and exceptions are those of
        :meth:`CachedFetcher.fetch <request_cache.fetcher.CachedFetcher.fetch>`.
        """
        validate_ttl(ttl_seconds)
        identity = Identity(url=url, method=method)
        output = get_output()

        if force_refresh:
            output.debug(f"Forced refresh: {identity}")
        else:
            cached = await asyncio.to_thread(
                self._store.find_live, identity, int(self._clock())
            )
            if cached is not None:
                output.debug(f"Cache hit: {identity} (expires {cached.expires_at})")
                return cached
            output.debug(f"Cache miss: {identity}")

        response = await self._transport.fetch(url, method, request_headers(user_agent, headers))
        entry = network_entry(identity, response, int(self._clock()), ttl_seconds)
        await asyncio.to_thread(persist, self._store, entry)
        return entry
