"""Run command -- interpret a specification directly.

Everything after ``--`` is handed to the interpreted CLI::

    actioncli run -c vault.yaml -- kv get secret/app --address http://vault:8200

The specification's command tree is built live (no code generation) and
bound to ``click``, so usage errors, ``--help`` and flag handling behave
exactly like a generated program.
"""

from __future__ import annotations

from typing import Optional

import click
import typer

from actioncli.commands import CONFIG_OPTION, fail, load_active_spec
from actioncli.exceptions import ActioncliError


def run_command(
    ctx: typer.Context,
    config: Optional[str] = CONFIG_OPTION,
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Per-request timeout in seconds."
    ),
) -> None:
    """Run a specification's commands without generating code.

    Pass the interpreted CLI's own arguments after ``--``.

    Example::

        actioncli run -c vault.yaml -- kv list secret/
    """
    from actioncli.interpreter import build_command_tree, to_click

    try:
        spec, global_cfg = load_active_spec(config, timeout)
        root = build_command_tree(spec, request=global_cfg.request)
        to_click(root).main(args=list(ctx.args), prog_name=spec.name, standalone_mode=False)
    except ActioncliError as exc:
        raise fail(exc) from None
    except click.ClickException as exc:
        exc.show()
        raise typer.Exit(code=exc.exit_code) from None
