"""Terminal output for offlinefetch: bodies on stdout, everything else on stderr.

A fetched body is the only thing written to stdout, so
``offlinefetch fetch ... --json | jq`` works whether the body came from the
server or from the cache. The status line (``HTTP 200 (offline, cached
...)``), warnings, errors and the fetcher's ``--verbose`` trace go to stderr.

Bodies render in one of three shapes:

* ``RICH`` -- syntax-highlighted JSON, chosen automatically on a colour TTY.
* ``PLAIN`` -- tab-separated lines, chosen automatically when piped.
* ``JSON`` -- the decoded value re-serialised with two-space indents.

Colour is off when ``NO_COLOR`` is set, when ``TERM=dumb``, or with
``--no-color``.

The CLI installs an :class:`OutputManager` with :func:`set_output`; library
code fetches it with :func:`get_output`. Without an installed manager the
default one keeps the debug trace silent, so embedding the fetcher prints
nothing.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """How bodies and tables are rendered on stdout. ``AUTO`` picks RICH or PLAIN."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Routes bodies to stdout and diagnostics to stderr.

    Args:
        format: Rendering of bodies and tables. ``AUTO`` becomes ``RICH`` on
            a TTY with colour enabled, ``PLAIN`` otherwise.
        no_color: Disable colour and Rich markup on both streams.
        quiet: Drop the status line; warnings and errors still print.
        verbose: Print the ``[debug]`` trace of online/offline decisions.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
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

    # ------------------------------------------------------------------ #
    # stdout
    # ------------------------------------------------------------------ #

    def format_response(self, data: Any) -> None:
        """Render a decoded JSON body in the active format."""
        if self._format == OutputFormat.JSON:
            self.print_data(_to_json(data))
        elif self._format == OutputFormat.PLAIN:
            for line in _plain_lines(data):
                self.print_data(line)
        elif isinstance(data, (dict, list)):
            self._stdout.print(Syntax(_to_json(data), "json", theme="monokai", word_wrap=True))
        else:
            self._stdout.print(str(data))

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print rows as a Rich table, a JSON array of objects, or TSV with a header line."""
        if self._format == OutputFormat.JSON:
            self.print_data(_to_json([dict(zip(headers, row)) for row in rows]))
            return
        if self._format == OutputFormat.PLAIN:
            for row in [headers, *rows]:
                self.print_data("\t".join(row))
            return

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
        """Status line such as ``HTTP 200 (online)``. Dropped by ``--quiet``."""
        if not self._quiet:
            self._emit(message, "", "")

    def warning(self, message: str) -> None:
        self._emit(message, "Warning: ", "[yellow]Warning:[/yellow] ")

    def error(self, message: str) -> None:
        self._emit(message, "Error: ", "[bold red]Error:[/bold red] ")

    def debug(self, message: str) -> None:
        """Trace line, printed only with ``--verbose``."""
        if not self._verbose:
            return
        if self._no_color:
            print(f"[debug] {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[dim]\\[debug] {message}[/dim]")

    def _emit(self, message: str, prefix: str, markup: str) -> None:
        if self._no_color:
            print(f"{prefix}{message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"{markup}{message}")


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _plain_lines(data: Any) -> list[str]:
    """Flatten a body into tab-separated lines: ``key\\tvalue`` for objects, one row per item."""
    if isinstance(data, dict):
        return [f"{key}\t{value}" for key, value in data.items()]
    if isinstance(data, list):
        return [
            "\t".join(str(v) for v in item.values()) if isinstance(item, dict) else str(item)
            for item in data
        ]
    return [str(data)]


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (to anything) or ``TERM=dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Process-wide manager
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one on first use."""
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


def print_table(
    headers: list[str],
    rows: list[list[str]],
    title: Optional[str] = None,
) -> None:
    get_output().print_table(headers, rows, title)


def error(message: str) -> None:
    get_output().error(message)
