"""Public entry points for callers that just want cached responses.

Long-running callers open a store once and reuse it::

    store = open_store("requests.db")
    entry = fetch(store, "http://example.com", ttl_seconds=600)

One-shot callers can pass a location instead of a store, or use
:func:`cached_request`, and the database is opened and closed around the
single call.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from request_cache.cache import CacheStore
from request_cache.config import resolve_config, resolve_db_path
from request_cache.fetcher import CachedFetcher
from request_cache.models import DEFAULT_TTL_SECONDS, Entry
from request_cache.transport import Transport

DEFAULT_DB_PATH = "request_cache_db"

Handle = Union[CacheStore, str, Path]


def open_store(location: Optional[Union[str, Path]] = None) -> CacheStore:
    """Open the cache database at *location* and ensure its schema.

    Args:
        location: Database path or ``":memory:"``. When ``None`` the path is
            resolved from ``REQUEST_CACHE_DB`` or the global config, falling
            back to ``requests.db`` in the XDG cache directory.

    Raises:
        StorageError: If the database cannot be opened or bootstrapped.
    """
    if location is None:
        location = resolve_db_path(resolve_config())
    return CacheStore.open(location)


def fetch(
    handle: Handle,
    url: str,
    method: str = "GET",
    ttl_seconds: int = DEFAULT_TTL_SECONDS,
    force_refresh: bool = False,
    user_agent: Optional[str] = None,
    headers: Optional[dict[str, str]] = None,
    transport: Optional[Transport] = None,
) -> Entry:
    """Return the response for ``(url, method)``, from cache if still live.

    Args:
        handle: An open :class:`CacheStore`, or a location to open for this
            call only.
        url: Request URL (exact match, no normalisation).
        method: HTTP method token (exact match).
        ttl_seconds: Freshness granted to a newly fetched body.
        force_refresh: Skip the cache lookup.
        user_agent: ``User-Agent`` header for the network call.
        headers: Extra request headers for the network call.
        transport: Transport to use. When omitted, one is built from the
            configured ``transport`` settings and closed around the call.

    Raises:
        FetchError: Nothing could be fetched.
        CachePersistError: Fetched, but not cached; see ``exc.entry``.
        StorageError: The cache could not be opened or queried.
    """
    own_transport = transport is None
    active_transport = Transport(resolve_config().transport) if own_transport else transport
    store = handle if isinstance(handle, CacheStore) else CacheStore.open(handle)
    try:
        fetcher = CachedFetcher(store, active_transport)
        return fetcher.fetch(
            url,
            method,
            ttl_seconds=ttl_seconds,
            force_refresh=force_refresh,
            user_agent=user_agent,
            headers=headers,
        )
    finally:
        if own_transport:
            active_transport.close()
        if store is not handle:
            store.close()


def cached_request(
    url: str,
    method: str = "GET",
    ttl_seconds: int = DEFAULT_TTL_SECONDS,
    force_refresh: bool = False,
    user_agent: Optional[str] = None,
    db_path: Optional[Union[str, Path]] = None,
    transport: Optional[Transport] = None,
) -> Entry:
    """One-shot :func:`fetch` against the database at *db_path*.

    *db_path* defaults to ``request_cache_db`` in the current directory.
    """
    return fetch(
        db_path if db_path is not None else DEFAULT_DB_PATH,
        url,
        method,
        ttl_seconds=ttl_seconds,
        force_refresh=force_refresh,
        user_agent=user_agent,
        transport=transport,
    )
