"""Fetch and lookup commands -- the CLI face of the cache.

``request-cache fetch URL`` returns the body for ``(URL, method)``, from the
cache when a live entry exists and from the network otherwise.
``request-cache lookup URL`` only reads the cache and never touches the
network.

The body goes to stdout. Where it came from (cache or network) and when it
expires go to stderr, or into a JSON object on stdout with ``--meta``.
"""

from __future__ import annotations

import time
from typing import Optional

import typer

from request_cache.exceptions import CachePersistError, InvalidUsageError, RequestCacheError
from request_cache.exit_codes import EXIT_NOT_FOUND
from request_cache.models import Entry
from request_cache.output import error, info, print_body, print_record, warning


def _parse_headers(raw_headers: list[str]) -> dict[str, str]:
    """Parse ``"Name: value"`` strings into a header dict.

    Raises:
        InvalidUsageError: If an item has no colon or an empty name.
    """
    headers: dict[str, str] = {}
    for raw in raw_headers:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise InvalidUsageError(f"Invalid header {raw!r}, expected 'Name: value'")
        headers[name.strip()] = value.strip()
    return headers


def _emit_entry(entry: Entry, meta: bool) -> None:
    if meta:
        print_record(entry.model_dump(mode="json"))
        return
    print_body(entry.body)
    info(f"{entry.origin.value}: {entry.method} {entry.url} (expires {entry.expires_at})")


def fetch_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="URL to fetch (matched verbatim against the cache)."),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method."),
    ttl: Optional[int] = typer.Option(
        None, "--ttl", min=0, help="Seconds a freshly fetched body stays valid."
    ),
    force_refresh: bool = typer.Option(
        False, "--force-refresh", "-r", help="Skip the cache and fetch from the network."
    ),
    user_agent: Optional[str] = typer.Option(
        None, "--user-agent", "-A", help="User-Agent header for the network call."
    ),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Extra request header, 'Name: value'. Repeatable."
    ),
    meta: bool = typer.Option(
        False, "--meta", help="Print the entry with its metadata instead of the bare body."
    ),
) -> None:
    """Fetch a URL through the cache.

    Exits 6 when nothing could be fetched, and 8 when the body was fetched
    (and printed) but could not be written to the cache.

    Example::

        request-cache fetch https://example.com --ttl 600
        request-cache --verbose fetch https://example.com -r -A my-agent/1.0
    """
    from request_cache.cache import CacheStore
    from request_cache.config import resolve_config, resolve_db_path
    from request_cache.fetcher import CachedFetcher
    from request_cache.transport import Transport

    db = ctx.obj.get("db") if ctx.obj else None
    try:
        headers = _parse_headers(header or [])
        config = resolve_config(cli_db_path=db, cli_ttl=ttl)
        with CacheStore.open(resolve_db_path(config)) as store, Transport(
            config.transport
        ) as transport:
            entry = CachedFetcher(store, transport).fetch(
                url,
                method,
                ttl_seconds=config.cache.ttl_seconds,
                force_refresh=force_refresh,
                user_agent=user_agent,
                headers=headers,
            )
    except CachePersistError as exc:
        _emit_entry(exc.entry, meta)
        warning(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    except RequestCacheError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    _emit_entry(entry, meta)


def lookup_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="URL to look up."),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method."),
    meta: bool = typer.Option(
        False, "--meta", help="Print the entry with its metadata instead of the bare body."
    ),
) -> None:
    """Show the live cached entry for a URL without touching the network.

    Exits 4 when there is no live entry.
    """
    from request_cache.cache import CacheStore
    from request_cache.config import resolve_config, resolve_db_path
    from request_cache.models import Identity

    db = ctx.obj.get("db") if ctx.obj else None
    identity = Identity(url=url, method=method)
    try:
        config = resolve_config(cli_db_path=db)
        with CacheStore.open(resolve_db_path(config)) as store:
            entry = store.find_live(identity, int(time.time()))
    except RequestCacheError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    if entry is None:
        error(f"No live cache entry for {identity}")
        raise typer.Exit(code=EXIT_NOT_FOUND)
    _emit_entry(entry, meta)
