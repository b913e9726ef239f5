"""Stats command -- report what the cache database holds."""

from __future__ import annotations

import time

import typer

from request_cache.exceptions import RequestCacheError
from request_cache.output import error, print_table


def stats_command(ctx: typer.Context) -> None:
    """Show the database location and how many rows are stored and still live.

    Expired rows are counted under ``rows`` until a later fetch of the same
    URL and method supersedes them.
    """
    from request_cache.cache import CacheStore
    from request_cache.config import resolve_config, resolve_db_path

    db = ctx.obj.get("db") if ctx.obj else None
    try:
        config = resolve_config(cli_db_path=db)
        with CacheStore.open(resolve_db_path(config)) as store:
            stats = store.stats(int(time.time()))
    except RequestCacheError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    print_table(
        ["location", "rows", "live"],
        [[stats["location"], str(stats["rows"]), str(stats["live"])]],
        title="Request cache",
    )
