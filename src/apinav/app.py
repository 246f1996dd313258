"""Typer application and CLI entry point for apinav.

This module wires together the top-level Typer application and registers the
built-in sub-commands (``api`` and ``links``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app,
turning :class:`~apinav.exceptions.ApinavError` into a clean error message
and the error's exit code.

See Also:
    :mod:`apinav.registry`: The API registry every ``api`` command loads.
    :mod:`apinav.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
from typing import Any, Optional

import typer
from rich.logging import RichHandler

from apinav import __version__
from apinav.commands.api import api_app
from apinav.commands.links import links_command
from apinav.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="apinav",
    help="Discover and navigate REST APIs from their descriptions.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.add_typer(api_app, name="api", help="Manage and inspect configured APIs.")
app.command("links")(links_command)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"apinav {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool, console: Any) -> None:  # noqa: ANN401
    """Route ``apinav.*`` log records to stderr through Rich."""
    logger = logging.getLogger("apinav")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = RichHandler(console=console, show_time=False, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


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
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Profile name to use."
    ),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        envvar="APINAV_CONFIG",
        help="Local config file to use instead of searching parent directories.",
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

    Initialises the global :class:`~apinav.output.OutputManager` and
    logging from CLI flags, and stores shared options (``profile``,
    ``config``) in the Typer context so that sub-commands can read them via
    ``ctx.obj``.
    """
    from apinav.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet)
    set_output(output)
    _configure_logging(verbose, output.stderr_console)

    ctx.ensure_object(dict)
    ctx.obj["profile"] = profile
    ctx.obj["config"] = config


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``apinav`` console script.

    Unhandled :class:`~apinav.exceptions.ApinavError` instances cause a
    clean exit with the error's ``exit_code``. Any other exception is
    reported and exits with the generic failure code.

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
        from apinav.exceptions import ApinavError
        from apinav.output import error

        if isinstance(exc, ApinavError):
            error(str(exc))
            sys.exit(exc.exit_code)
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
