"""Inspect commands -- examine a specification.

Provides the ``actioncli inspect`` sub-command group with read-only views of
a specification: its command tree, its flags, and the steps of one action.
All sub-commands resolve and load the specification the same way ``run``
does and print tables in the active output format.
"""

from __future__ import annotations

import json
from typing import Optional

import typer

from actioncli.commands import CONFIG_OPTION, fail, load_active_spec
from actioncli.engine.policy import iter_commands, output_data_expression, usage
from actioncli.exceptions import ActioncliError, InvalidUsageError
from actioncli.output import get_output, info
from actioncli.parser.expressions import unparse

inspect_app = typer.Typer(no_args_is_help=True)


def _cell(value: object) -> str:
    if value is None:
        return "-"
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


@inspect_app.command("commands")
def inspect_commands(config: Optional[str] = CONFIG_OPTION) -> None:
    """List every command with its usage and what it does.

    Example::

        actioncli inspect commands -c vault.yaml
    """
    try:
        spec, _ = load_active_spec(config)
    except ActioncliError as exc:
        raise fail(exc) from None

    headers = ["Command", "Usage", "Kind", "Steps", "Output", "Description"]
    rows: list[list[str]] = []
    for path, command in iter_commands(spec.commands):
        action = command.action
        rows.append([
            " ".join(path),
            " ".join(path[:-1] + (usage(command),)),
            "leaf" if command.is_leaf else "group",
            str(len(action.steps)) if action else "",
            action.output.format.value if action and action.output else "",
            command.description or "-",
        ])
    if not rows:
        info(f"{spec.name} declares no commands.")
        return
    get_output().print_table(headers, rows, title=f"{spec.name} -- Commands ({len(rows)})")


@inspect_app.command("flags")
def inspect_flags(config: Optional[str] = CONFIG_OPTION) -> None:
    """List global and command-local flags.

    Example::

        actioncli inspect flags -c vault.yaml --plain
    """
    try:
        spec, _ = load_active_spec(config)
    except ActioncliError as exc:
        raise fail(exc) from None

    scoped = [("global", flag) for flag in spec.flags]
    for path, command in iter_commands(spec.commands):
        scoped.extend((" ".join(path), flag) for flag in command.flags)

    headers = ["Flag", "Short", "Scope", "Default", "Env", "Required"]
    rows = [
        [
            f"--{flag.name}",
            f"-{flag.short}" if flag.short else "",
            scope,
            flag.default,
            flag.env or "",
            "yes" if flag.required else "",
        ]
        for scope, flag in scoped
    ]
    if not rows:
        info(f"{spec.name} declares no flags.")
        return
    get_output().print_table(headers, rows, title=f"{spec.name} -- Flags ({len(rows)})")


@inspect_app.command("action")
def inspect_action(
    path: list[str] = typer.Argument(..., help="Command path, e.g. 'kv get'."),
    config: Optional[str] = CONFIG_OPTION,
) -> None:
    """Show the steps and output of one command's action.

    Example::

        actioncli inspect action kv get -c vault.yaml
    """
    try:
        spec, _ = load_active_spec(config)
        commands = {tuple(p): c for p, c in iter_commands(spec.commands)}
        command = commands.get(tuple(path))
        if command is None:
            raise InvalidUsageError(f"No command {' '.join(path)!r} in {spec.name}")
        if command.action is None:
            raise InvalidUsageError(f"Command {' '.join(path)!r} is a group and has no action")
    except ActioncliError as exc:
        raise fail(exc) from None

    action = command.action
    rows = [
        [
            step.name,
            step.method.value,
            _cell(unparse(step.url)),
            _cell(unparse(step.headers) if step.headers else None),
            _cell(unparse(step.body) if step.body else None),
        ]
        for step in action.steps
    ]
    output = get_output()
    if rows:
        output.print_table(
            ["Step", "Method", "URL", "Headers", "Body"],
            rows,
            title=f"{' '.join(path)} -- Steps ({len(rows)})",
        )
    if action.output is not None:
        data = output_data_expression(action)
        info(
            f"Output: {action.output.format.value}, data "
            f"{_cell(unparse(data)) if data is not None else 'null'}"
            + (f", columns {', '.join(action.output.columns)}" if action.output.columns else "")
        )
