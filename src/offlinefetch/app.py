"""Typer application and CLI entry point for offlinefetch.

Exposes the two library operations as commands:

* ``offlinefetch fetch URL --name NAME`` -- request *URL*, cache a 200 body
  under *NAME*, or fall back to the cached copy.
* ``offlinefetch show NAME`` -- print the cached copy without any network
  access.
* ``offlinefetch inspect NAME`` -- show where the entry lives and when it
  was last written.

The response body goes to stdout, the status line (``HTTP 200 (offline)``)
to stderr. Commands exit with :data:`~offlinefetch.exit_codes.EXIT_NO_DATA`
when neither the server nor the cache produced anything.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. Unhandled exceptions are written to a crash log under
the data directory.
"""

from __future__ import annotations

import asyncio
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, NoReturn, Optional

import typer

from offlinefetch import __version__
from offlinefetch.exit_codes import EXIT_GENERIC_FAILURE, EXIT_NO_DATA
from offlinefetch.models import FetchOutcome, HTTPMethod, ParameterEncoding


app = typer.Typer(
    name="offlinefetch",
    help="Fetch JSON over HTTP with a last-known-good offline cache.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"offlinefetch {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
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
        False, "--verbose", "-v", help="Show online/offline decisions on stderr."
    ),
) -> None:
    """Initialise the global :class:`~offlinefetch.output.OutputManager` from CLI flags."""
    from offlinefetch.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(
        OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    )


# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #


@app.command("fetch")
def fetch_command(
    url: str = typer.Argument(help="URL of the JSON resource."),
    name: str = typer.Option(
        ..., "--name", "-n", help="Cache name (a plain file name)."
    ),
    method: HTTPMethod = typer.Option(
        HTTPMethod.GET, "--method", "-X", case_sensitive=False, help="HTTP method."
    ),
    param: Optional[list[str]] = typer.Option(
        None, "--param", "-d", help="Request parameter as key=value (repeatable)."
    ),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Request header as 'Name: value' (repeatable)."
    ),
    encoding: ParameterEncoding = typer.Option(
        ParameterEncoding.URL_DEFAULT,
        "--encoding",
        "-e",
        help="Parameter placement: url (by method), query, form, or json.",
    ),
    cache_dir: Optional[str] = typer.Option(
        None, "--cache-dir", help="Cache directory (default: XDG cache dir)."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Request timeout in seconds."
    ),
) -> None:
    """Fetch URL, caching a 200 response; serve the cached copy when offline.

    Example::

        offlinefetch fetch https://api.example.com/weather -n weather
        offlinefetch fetch https://api.example.com/search -n search -d q=rain
    """
    from offlinefetch.config import resolve_settings
    from offlinefetch.exceptions import OfflineFetchError
    from offlinefetch.fetcher import fetch_with_fallback

    try:
        parameters = _parse_pairs(param, "=", "--param")
        headers = _parse_pairs(header, ":", "--header")
        settings = resolve_settings(cli_cache_dir=cache_dir, cli_timeout=timeout)
        outcome = asyncio.run(
            fetch_with_fallback(
                url,
                name,
                method=method,
                parameters=parameters or None,
                encoding=encoding,
                headers=headers or None,
                settings=settings,
            )
        )
    except OfflineFetchError as exc:
        _fail(exc)

    _finish(outcome)


@app.command("show")
def show_command(
    name: str = typer.Argument(help="Cache name."),
    cache_dir: Optional[str] = typer.Option(
        None, "--cache-dir", help="Cache directory (default: XDG cache dir)."
    ),
) -> None:
    """Print the cached body for NAME without any network access."""
    from offlinefetch.config import resolve_settings
    from offlinefetch.exceptions import OfflineFetchError
    from offlinefetch.fetcher import read_cache

    try:
        settings = resolve_settings(cli_cache_dir=cache_dir)
        outcome = asyncio.run(read_cache(name, cache_dir=settings.cache_dir))
    except OfflineFetchError as exc:
        _fail(exc)

    _finish(outcome)


@app.command("inspect")
def inspect_command(
    name: str = typer.Argument(help="Cache name."),
    cache_dir: Optional[str] = typer.Option(
        None, "--cache-dir", help="Cache directory (default: XDG cache dir)."
    ),
) -> None:
    """Show the path and last modification time of the cache entry NAME."""
    from offlinefetch.cache import OfflineCache
    from offlinefetch.config import get_cache_dir, resolve_settings
    from offlinefetch.exceptions import OfflineFetchError
    from offlinefetch.output import print_table

    try:
        settings = resolve_settings(cli_cache_dir=cache_dir)
        cache = OfflineCache(settings.cache_dir or get_cache_dir(create=False))
        path = cache.path_for(name)
        modified = cache.modified_at(name)
    except OfflineFetchError as exc:
        _fail(exc)

    print_table(
        ["name", "path", "exists", "modified"],
        [[
            name,
            str(path),
            "yes" if path.is_file() else "no",
            modified.isoformat() if modified else "-",
        ]],
        title="Cache entry",
    )


# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #


def _parse_pairs(
    values: Optional[list[str]],
    separator: str,
    option: str,
) -> dict[str, str]:
    """Split ``key<sep>value`` strings into a dict.

    Raises:
        InvalidUsageError: If an entry has no separator or an empty key.
    """
    from offlinefetch.exceptions import InvalidUsageError

    pairs: dict[str, str] = {}
    for raw in values or []:
        key, sep, value = raw.partition(separator)
        key = key.strip()
        if not sep or not key:
            raise InvalidUsageError(
                f"Invalid {option} value {raw!r}: expected 'key{separator}value'"
            )
        pairs[key] = value.strip()
    return pairs


def _finish(outcome: FetchOutcome) -> None:
    """Render *outcome* and exit non-zero when it carries no data."""
    from offlinefetch.client.response import format_outcome

    format_outcome(outcome)
    if not outcome.has_data:
        raise typer.Exit(code=EXIT_NO_DATA)


def _fail(exc: Exception) -> NoReturn:
    """Report an :class:`~offlinefetch.exceptions.OfflineFetchError` and exit with its code."""
    from offlinefetch.output import error

    error(str(exc))
    raise typer.Exit(code=getattr(exc, "exit_code", EXIT_GENERIC_FAILURE))


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from offlinefetch.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``offlinefetch`` console script.

    Unhandled :class:`~offlinefetch.exceptions.OfflineFetchError` instances
    cause a clean exit with the error's ``exit_code``. All other exceptions
    produce a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from offlinefetch.exceptions import OfflineFetchError
        from offlinefetch.output import error

        if isinstance(exc, OfflineFetchError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
