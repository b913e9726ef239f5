"""Terminal output for request-cache: bodies and records on stdout, notes on stderr.

Three kinds of data reach stdout:

* a **response body**, printed byte-for-byte as text (:meth:`OutputManager.print_body`);
* a **record** such as an entry's metadata or the global config
  (:meth:`OutputManager.print_record`);
* the **stats table** (:meth:`OutputManager.print_table`).

Everything else is a diagnostic on stderr. Library modules (the fetchers and
the store) report cache decisions through :func:`get_output` ``.debug(...)``,
which prints only under ``--verbose``.

Colour follows `clig.dev <https://clig.dev/>`_: off when ``NO_COLOR`` is set,
when ``TERM=dumb``, or with ``--no-color``.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Mapping, Optional

from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text


class OutputFormat(str, Enum):
    """How records and tables are rendered on stdout.

    ``AUTO`` becomes ``RICH`` on an interactive terminal with colour enabled
    and ``PLAIN`` otherwise.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


# level -> (prefix, rich style, hidden by --quiet)
_LEVELS: dict[str, tuple[str, str, bool]] = {
    "info": ("", "", True),
    "success": ("", "green", True),
    "warning": ("Warning: ", "yellow", False),
    "error": ("Error: ", "bold red", False),
    "debug": ("[debug] ", "dim", False),
}


class OutputManager:
    """Writes cache results to stdout and diagnostics to stderr.

    Args:
        format: Rendering for records and tables. ``AUTO`` is resolved once,
            here, from TTY detection and the colour settings.
        no_color: Disable colour and styling.
        quiet: Drop ``info`` and ``success`` notes.
        verbose: Show ``debug`` notes (cache hit/miss/store decisions).
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _color_disabled_by_env()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            interactive = _is_tty() and not self._no_color
            format = OutputFormat.RICH if interactive else OutputFormat.PLAIN
        self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(format == OutputFormat.RICH),
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # ------------------------------------------------------------------ #
    # stdout
    # ------------------------------------------------------------------ #

    def print_body(self, body: str) -> None:
        """Write a response body to stdout exactly as stored.

        Bodies are never passed through Rich, so markup-like text such as
        ``[bold]`` in HTML or JSON payloads is printed verbatim.
        """
        print(body, file=sys.stdout, flush=True)

    def print_record(self, record: Mapping[str, Any]) -> None:
        """Write one record, e.g. an entry's metadata or the global config.

        * **JSON** -- the record as an indented JSON object.
        * **Plain** -- one ``key<TAB>value`` line per leaf; nested mappings
          use dotted keys (``cache.ttl_seconds``) as ``config set`` does.
        * **Rich** -- syntax-highlighted JSON.
        """
        if self._format == OutputFormat.PLAIN:
            for key, value in _flatten(record):
                self.print_body(f"{key}\t{_plain_value(value)}")
            return

        rendered = json.dumps(record, indent=2, ensure_ascii=False, default=str)
        if self._format == OutputFormat.JSON:
            self.print_body(rendered)
        else:
            self._stdout.print(Syntax(rendered, "json", theme="monokai", word_wrap=True))

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Write rows under *headers*: a JSON array of objects, TSV, or a Rich table.

        *title* is only shown in Rich mode.
        """
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            self.print_body(json.dumps(records, indent=2, ensure_ascii=False))
        elif self._format == OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self.print_body("\t".join(line))
        else:
            table = Table(title=title, header_style="bold cyan")
            for header in headers:
                table.add_column(header)
            for row in rows:
                table.add_row(*row)
            self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # stderr
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        self._note("info", message)

    def success(self, message: str) -> None:
        self._note("success", message)

    def warning(self, message: str) -> None:
        self._note("warning", message)

    def error(self, message: str) -> None:
        self._note("error", message)

    def debug(self, message: str) -> None:
        if self._verbose:
            self._note("debug", message)

    def _note(self, level: str, message: str) -> None:
        prefix, style, quietable = _LEVELS[level]
        if quietable and self._quiet:
            return
        if self._no_color:
            print(f"{prefix}{message}", file=sys.stderr, flush=True)
            return
        # Text, not a markup string: URLs and bodies may contain brackets.
        self._stderr.print(Text(prefix + message, style=style), soft_wrap=True)


def _flatten(record: Mapping[str, Any], parent: str = "") -> list[tuple[str, Any]]:
    items: list[tuple[str, Any]] = []
    for key, value in record.items():
        name = f"{parent}.{key}" if parent else str(key)
        if isinstance(value, Mapping):
            items.extend(_flatten(value, name))
        else:
            items.append((name, value))
    return items


def _plain_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _color_disabled_by_env() -> bool:
    """True when ``NO_COLOR`` is set (to anything) or ``TERM=dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Process-wide instance, installed by the CLI callback
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating an ``AUTO`` one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager; the next :func:`get_output` builds a fresh one."""
    global _output
    _output = None


def print_body(body: str) -> None:
    get_output().print_body(body)


def print_record(record: Mapping[str, Any]) -> None:
    get_output().print_record(record)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)
