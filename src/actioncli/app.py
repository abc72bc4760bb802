"""Typer application and CLI entry point for actioncli.

This module wires together the top-level Typer application and registers the
built-in sub-commands (``run``, ``validate``, ``inspect``, ``build``,
``config``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs a SIGINT handler and invokes the Typer app;
:class:`~actioncli.exceptions.ActioncliError` instances exit with their
``exit_code``, and unexpected exceptions are written to a crash log under
the data directory.

See Also:
    :mod:`actioncli.config`: Configuration and precedence resolution.
    :mod:`actioncli.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from actioncli import __version__
from actioncli.commands.build import build_app
from actioncli.commands.config import config_app
from actioncli.commands.inspect import inspect_app
from actioncli.commands.run import run_command
from actioncli.commands.validate import validate_command
from actioncli.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="actioncli",
    help="Build and run CLIs from declarative HTTP action specifications.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command(
    "run",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)(run_command)
app.command("validate")(validate_command)
app.add_typer(inspect_app, name="inspect", help="Inspect a specification.")
app.add_typer(build_app, name="build", help="Generate source, packages or binaries.")
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"actioncli {__version__}")
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
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
    output_file: Optional[str] = typer.Option(
        None, "-o", "--output", help="Append primary output to this file."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~actioncli.output.OutputManager` from CLI
    flags and records ``verbose`` in ``ctx.obj``.
    """
    from actioncli.output import OutputFormat, OutputManager, set_output

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
            output_file=output_file,
        )
    )
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback to a crash log and return its path."""
    from actioncli.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(f"{type(exc).__name__}: {exc}\n\n{traceback.format_exc()}")
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``actioncli`` console script.

    Unhandled :class:`~actioncli.exceptions.ActioncliError` instances cause a
    clean exit with the error's ``exit_code``. All other exceptions produce a
    crash log and a generic failure exit.

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
        from actioncli.exceptions import ActioncliError
        from actioncli.output import error

        if isinstance(exc, ActioncliError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
