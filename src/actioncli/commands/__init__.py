"""Built-in ``actioncli`` sub-commands.

Every command that needs a specification resolves it the same way, through
:func:`load_active_spec`: ``--config/-c`` first, then ``ACTIONCLI_SPEC``,
then the project's ``actioncli.json``, then the global default.
"""

from __future__ import annotations

from typing import Optional

import typer

from actioncli.exceptions import ActioncliError, InvalidUsageError
from actioncli.models import GlobalConfig, Specification
from actioncli.output import debug, error

CONFIG_OPTION = typer.Option(
    None, "--config", "-c", help="Specification file, URL, or '-' for stdin."
)


def load_active_spec(
    config: Optional[str] = None,
    timeout: Optional[float] = None,
) -> tuple[Specification, GlobalConfig]:
    """Resolve, load and validate the specification to work on.

    Raises:
        InvalidUsageError: When no specification source can be resolved.
        SpecParseError: When the specification cannot be loaded or is invalid.
    """
    from actioncli.config import resolve_config
    from actioncli.parser import load_specification

    global_cfg, source = resolve_config(cli_spec=config, cli_timeout=timeout)
    if source is None:
        raise InvalidUsageError(
            "No specification given. Pass --config/-c, set ACTIONCLI_SPEC, "
            "or add \"spec\" to ./actioncli.json."
        )
    debug(f"Loading specification from {source}")
    return load_specification(source), global_cfg


def fail(exc: ActioncliError) -> typer.Exit:
    """Report *exc* on stderr and return the ``typer.Exit`` to raise."""
    error(str(exc))
    return typer.Exit(code=exc.exit_code)
