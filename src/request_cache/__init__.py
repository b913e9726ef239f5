"""request-cache -- a lookaside cache for outbound HTTP requests.

Given a request identity (URL plus method) the cache returns a previously
fetched body while it is still valid, otherwise performs the request through
:mod:`httpx` and remembers the body in SQLite for a caller-chosen number of
seconds.

Typical use::

    from request_cache import fetch, open_store

    store = open_store("requests.db")
    entry = fetch(store, "http://example.com", ttl_seconds=600)
    print(entry.origin, entry.body[:80])

Modules:
    api: ``open_store``, ``fetch`` and ``cached_request`` entry points.
    cache: SQLite persistence (:class:`~request_cache.cache.CacheStore`).
    fetcher: Blocking lookup-or-fetch orchestration.
    async_fetcher: The same for asyncio callers.
    transport: httpx adapters.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    app: Typer CLI entry point.
"""

__version__ = "0.1.0"

from request_cache.api import cached_request, fetch, open_store  # noqa: E402
from request_cache.async_fetcher import AsyncCachedFetcher  # noqa: E402
from request_cache.cache import CacheStore  # noqa: E402
from request_cache.exceptions import (  # noqa: E402
    CachePersistError,
    FetchError,
    RequestCacheError,
    StorageError,
)
from request_cache.fetcher import CachedFetcher  # noqa: E402
from request_cache.models import Entry, Identity, Origin  # noqa: E402
from request_cache.transport import AsyncTransport, Transport  # noqa: E402

__all__ = [
    "AsyncCachedFetcher",
    "AsyncTransport",
    "CacheStore",
    "CachePersistError",
    "CachedFetcher",
    "Entry",
    "FetchError",
    "Identity",
    "Origin",
    "RequestCacheError",
    "StorageError",
    "Transport",
    "cached_request",
    "fetch",
    "open_store",
]
