"""Lookup-or-fetch-and-store orchestration.

:class:`CachedFetcher` decides, per call, whether to serve an entry from the
:class:`~request_cache.cache.CacheStore` or go to the network:

1. Unless ``force_refresh`` is set, look for a live entry. A hit is returned
   tagged ``FROM_CACHE`` with its stored expiry untouched.
2. On a miss (or when forced), fetch through the transport. Transport
   failures propagate as :class:`~request_cache.exceptions.FetchError` and
   nothing is written.
3. Stamp ``expires_at = now + ttl_seconds``, supersede the identity's row,
   and return the entry tagged ``FROM_NETWORK``.

If step 3's write fails, the fetched entry is not lost: it rides on the
raised :class:`~request_cache.exceptions.CachePersistError`.

The fetcher keeps no state between calls. Concurrent misses for the same
identity may each reach the network; the store keeps a single row per
identity regardless of how the writes interleave.

See Also:
    :class:`~request_cache.async_fetcher.AsyncCachedFetcher` for the asyncio
    equivalent.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

from request_cache.cache import CacheStore
from request_cache.exceptions import CachePersistError, InvalidUsageError, StorageError
from request_cache.models import DEFAULT_TTL_SECONDS, Entry, Identity, Origin, TransportResponse
from request_cache.output import get_output
from request_cache.transport import Transport

Clock = Callable[[], float]


class CachedFetcher:
    """Serve requests from the cache when possible, from the network otherwise.

    Args:
        store: Where entries are looked up and persisted.
        transport: Performs the network call on a miss.
        clock: Returns the current Unix time; whole seconds are used.

    Example::

        with CacheStore.open("requests.db") as store, Transport() as transport:
            fetcher = CachedFetcher(store, transport)
            entry = fetcher.fetch("http://example.com", "GET", ttl_seconds=600)
            entry.cached  # False the first time, True on the next call
    """

    def __init__(
        self,
        store: CacheStore,
        transport: Transport,
        clock: Clock = time.time,
    ) -> None:
        self._store = store
        self._transport = transport
        self._clock = clock

    @property
    def store(self) -> CacheStore:
        return self._store

    def fetch(
        self,
        url: str,
        method: str = "GET",
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        force_refresh: bool = False,
        user_agent: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Entry:
        """Return the response for ``(url, method)``, from cache if live.

        Args:
            url: Request URL, used verbatim as part of the identity.
            method: HTTP method token, used verbatim as part of the identity.
            ttl_seconds: Freshness granted to a newly fetched body.
            force_refresh: Skip the lookup and always hit the network.
            user_agent: Sets the ``User-Agent`` header for the network call.
            headers: Extra request headers for the network call.

        Returns:
            The :class:`Entry`, tagged with where it came from.

        Raises:
            InvalidUsageError: If *ttl_seconds* is negative.
            FetchError: If the transport failed; nothing was cached.
            CachePersistError: If the body was fetched but not cached.
            StorageError: If the cache lookup failed.
        """
        validate_ttl(ttl_seconds)
        identity = Identity(url=url, method=method)
        output = get_output()

        if force_refresh:
            output.debug(f"Forced refresh: {identity}")
        else:
            cached = self._store.find_live(identity, int(self._clock()))
            if cached is not None:
                output.debug(f"Cache hit: {identity} (expires {cached.expires_at})")
                return cached
            output.debug(f"Cache miss: {identity}")

        response = self._transport.fetch(url, method, request_headers(user_agent, headers))
        entry = network_entry(identity, response, int(self._clock()), ttl_seconds)
        persist(self._store, entry)
        return entry


def validate_ttl(ttl_seconds: int) -> None:
    if ttl_seconds < 0:
        raise InvalidUsageError(f"ttl_seconds must not be negative, got {ttl_seconds}")


def request_headers(
    user_agent: Optional[str],
    headers: Optional[dict[str, str]],
) -> dict[str, str]:
    """Merge caller headers with an explicit User-Agent, which takes priority."""
    merged = dict(headers or {})
    if user_agent is not None:
        merged = {k: v for k, v in merged.items() if k.lower() != "user-agent"}
        merged["User-Agent"] = user_agent
    return merged


def network_entry(
    identity: Identity,
    response: TransportResponse,
    now: int,
    ttl_seconds: int,
) -> Entry:
    """Build the entry for a body that just arrived from the network."""
    return Entry(
        url=identity.url,
        method=identity.method,
        body=response.body,
        expires_at=now + ttl_seconds,
        origin=Origin.FROM_NETWORK,
        status_code=response.status_code,
    )


def persist(store: CacheStore, entry: Entry) -> None:
    """Supersede the identity's row with *entry*.

    Raises:
        CachePersistError: Wrapping the store's failure, with *entry* attached.
    """
    try:
        store.replace(entry)
    except StorageError as exc:
        raise CachePersistError(
            f"Fetched {entry.identity} but could not cache it: {exc}",
            entry=entry,
            cause=exc.cause or exc,
        ) from exc
    get_output().debug(f"Stored {entry.identity} until {entry.expires_at}")
