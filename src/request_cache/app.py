"""Typer application and CLI entry point for request-cache.

The CLI is a thin wrapper around :mod:`request_cache.api`: it resolves the
configuration once, opens the cache database, and runs one fetch or lookup
per invocation.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs a SIGINT handler, registers the built-in
commands, and invokes the Typer app. :class:`RequestCacheError` exits with
the error's code; any other exception is written to a crash log under the
data directory.

See Also:
    :mod:`request_cache.config`: Configuration resolution.
    :mod:`request_cache.output`: Output formatting initialised in
    :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from request_cache import __version__
from request_cache.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="request-cache",
    help="Fetch URLs through a local SQLite response cache.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"request-cache {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    db: Optional[str] = typer.Option(
        None, "--db", help="Cache database path (overrides REQUEST_CACHE_DB)."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~request_cache.output.OutputManager` built
    from the CLI flags and stores shared options in ``ctx.obj``.
    """
    from request_cache.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(
        OutputManager(
            format=fmt,
            no_color=no_color,
            quiet=quiet,
            verbose=verbose,
        )
    )

    ctx.ensure_object(dict)
    ctx.obj["db"] = db
    ctx.obj["verbose"] = verbose


_registered = False


def register_commands() -> None:
    """Attach the built-in commands to :data:`app`. Idempotent."""
    global _registered
    if _registered:
        return
    from request_cache.commands.config import config_app
    from request_cache.commands.fetch import fetch_command, lookup_command
    from request_cache.commands.stats import stats_command

    app.command("fetch")(fetch_command)
    app.command("lookup")(lookup_command)
    app.command("stats")(stats_command)
    app.add_typer(config_app, name="config", help="Configuration management.")
    _registered = True


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from request_cache.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    )
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``request-cache`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        register_commands()
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from request_cache.exceptions import RequestCacheError
        from request_cache.output import error

        if isinstance(exc, RequestCacheError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
