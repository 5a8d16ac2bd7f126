"""Typer application factory and CLI entry point for updclient.

This module wires together the top-level Typer application and registers the
built-in sub-command groups (``auth``, ``config``, ``updates``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
:class:`~updclient.exceptions.UpdateClientError` exits with the error's
code; any other exception is written to a crash log under the data
directory.

See Also:
    :mod:`updclient.config`: Directory layout and precedence resolution.
    :mod:`updclient.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from updclient import __version__
from updclient.commands.auth import auth_app
from updclient.commands.config import config_app
from updclient.commands.updates import updates_app
from updclient.exit_codes import EXIT_GENERIC_FAILURE
from updclient.output import OutputManager


app = typer.Typer(
    name="updclient",
    help="Log in to a product update server and manage package updates.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.add_typer(auth_app, name="auth", help="Log in to and out of the update server.")
app.add_typer(config_app, name="config", help="Server URL and installed packages.")
app.add_typer(updates_app, name="updates", help="Check for and download updates.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"updclient {__version__}")
        raise typer.Exit()


def _configure_logging(output: OutputManager) -> None:
    """Route the package's log records to stderr through Rich.

    Warnings are always shown, debug records only with ``--verbose`` and
    nothing below errors with ``--quiet``.
    """
    from rich.logging import RichHandler

    logger = logging.getLogger("updclient")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = RichHandler(
        console=output.stderr_console,
        show_time=False,
        show_path=False,
        markup=False,
    )
    logger.addHandler(handler)

    if output.is_verbose:
        logger.setLevel(logging.DEBUG)
    elif output.is_quiet:
        logger.setLevel(logging.ERROR)
    else:
        logger.setLevel(logging.WARNING)


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
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmations."
    ),
    site_url: Optional[str] = typer.Option(
        None, "--site-url", help="Site identity sent to the update server."
    ),
    manifest: Optional[str] = typer.Option(
        None, "--manifest", help="Path to the installed-package manifest."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~updclient.output.OutputManager` and the
    package logger from CLI flags, and stores shared options (``force``,
    ``site_url``, ``manifest``) in the Typer context so that sub-commands can
    read them via ``ctx.obj``. A ``services`` entry already present in
    ``ctx.obj`` is kept.

    Args:
        ctx: Typer invocation context.
        version: If ``True``, print the version string and exit.
        json_output: Force JSON output format.
        plain_output: Force plain-text output format.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential diagnostic output.
        verbose: Enable debug-level diagnostic output.
        force: Skip interactive confirmations.
        site_url: Site identity override (highest precedence).
        manifest: Manifest path override (highest precedence).
    """
    from updclient.output import OutputFormat, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(
        format=fmt,
        no_color=no_color,
        quiet=quiet,
        verbose=verbose,
    )
    set_output(output)
    _configure_logging(output)

    ctx.ensure_object(dict)
    ctx.obj["force"] = force
    ctx.obj["verbose"] = verbose
    ctx.obj["site_url"] = site_url
    ctx.obj["manifest"] = manifest


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from updclient.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``updclient`` console script.

    Unhandled :class:`~updclient.exceptions.UpdateClientError` instances
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
        from updclient.exceptions import UpdateClientError
        from updclient.output import error

        if isinstance(exc, UpdateClientError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
