"""Command-tree policies applied identically by both backends."""

from __future__ import annotations

from typing import Iterator, Optional

from actioncli.models import (
    Action,
    Arg,
    Command,
    Expression,
    Flag,
    Namespace,
    ReferenceExpr,
    Specification,
)


def arg_usage(args: list[Arg]) -> str:
    """``<required> [optional]`` placeholders in declaration order."""
    return " ".join(f"<{arg.name}>" if arg.required else f"[{arg.name}]" for arg in args)


def usage(command: Command) -> str:
    """Usage line: the command name followed by its argument placeholders."""
    placeholders = arg_usage(command.args)
    return f"{command.name} {placeholders}" if placeholders else command.name


def arity(command: Command) -> tuple[int, int]:
    """Return ``(required, total)`` positional argument counts.

    When ``required == total`` exactly that many arguments are accepted;
    otherwise at least ``required`` with no upper bound.
    """
    required = sum(1 for arg in command.args if arg.required)
    return required, len(command.args)


def arg_positions(command: Command) -> dict[str, int]:
    return {arg.name: position for position, arg in enumerate(command.args)}


def flag_help(flag: Flag) -> str:
    """Help text for a flag option: description plus env and required hints."""
    parts = [flag.description] if flag.description else []
    if flag.env:
        parts.append(f"[env: {flag.env}]")
    if flag.required:
        parts.append("[required]")
    return " ".join(parts)


def option_name(flag: Flag) -> str:
    return f"--{flag.name}"


def node_flags(spec: Specification, command: Optional[Command]) -> list[Flag]:
    """Flags registered on a node: every global flag, then the node's own."""
    return list(spec.flags) + (list(command.flags) if command is not None else [])


def required_flags(spec: Specification, command: Command) -> dict[str, str]:
    """Identifier to option spelling for flags a leaf must have set."""
    return {
        flag.identifier: option_name(flag)
        for flag in node_flags(spec, command)
        if flag.required
    }


def output_data_expression(action: Action) -> Optional[Expression]:
    """The expression an action's output renders.

    The declared ``data`` when present, else the whole result of the last
    declared step, else ``None`` (render null).
    """
    if action.output is not None and action.output.data is not None:
        return action.output.data
    if action.steps:
        return ReferenceExpr(namespace=Namespace.STEP, name=action.steps[-1].name)
    return None


def iter_commands(
    commands: list[Command], parents: tuple[str, ...] = ()
) -> Iterator[tuple[tuple[str, ...], Command]]:
    """Depth-first ``(path, command)`` pairs, parents before children."""
    for command in commands:
        path = parents + (command.name,)
        yield path, command
        yield from iter_commands(command.commands, path)
