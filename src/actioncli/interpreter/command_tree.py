"""Build a live command tree from a specification.

This is the interpreting counterpart of
:mod:`actioncli.generator.source`: the same usage strings, arity policy and
flag registration, but bound to live objects instead of emitted as code.

**Algorithm summary**

1. Seed one :class:`~actioncli.runtime.FlagValues` store with every flag's
   effective default (environment variable when set and non-empty, else the
   declared default). The store is shared by the whole tree.
2. Walk the specification recursively, producing one :class:`CommandNode`
   per command. Every node carries all global flags plus its own local
   flags; leaves get a run handler.
3. :func:`to_click` binds a node tree to ``click`` groups and commands whose
   flag options write into the shared store.

A leaf's run handler validates arity and required flags, seeds an
:class:`~actioncli.interpreter.environment.Environment`, executes the
action's steps in order, and writes the rendered output to stdout.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Optional

import click
import httpx

from actioncli.engine.policy import (
    arg_usage,
    arity,
    flag_help,
    node_flags,
    required_flags,
    usage,
)
from actioncli.interpreter.environment import Environment
from actioncli.interpreter.executor import execute_action
from actioncli.models import Arg, Command, Flag, RequestConfig, Specification
from actioncli.output import debug, get_output
from actioncli.runtime import FlagValues, check_arity, env_or, make_client, require_flags


@dataclass
class CommandNode:
    """One node of the live command tree.

    Attributes:
        name: Command name (the CLI name for the root).
        description: Help text.
        usage: ``name <required> [optional]``.
        arity: ``(required, total)`` positional argument counts.
        flags: Flags registered on this node (global first, then local).
        args: Declared positional arguments.
        store: Flag values shared by every node of the tree.
        run: Run handler; ``None`` for groups.
        children: Sub-commands, in declaration order.
    """

    name: str
    description: str
    usage: str
    arity: tuple[int, int]
    flags: list[Flag]
    args: list[Arg]
    store: FlagValues
    run: Optional[Callable[[list[str]], None]] = None
    children: list["CommandNode"] = field(default_factory=list)

    @property
    def is_leaf(self) -> bool:
        return self.run is not None

    def validate_args(self, args: list[str]) -> None:
        """Raise :class:`click.UsageError` when *args* violates the arity policy."""
        check_arity(args, *self.arity)

    def find(self, *path: str) -> "CommandNode":
        """Return the descendant at *path* (``KeyError`` when absent)."""
        node = self
        for name in path:
            node = next((child for child in node.children if child.name == name), None)
            if node is None:
                raise KeyError(" ".join(path))
        return node


def seed_flag_values(spec: Specification) -> FlagValues:
    return FlagValues({flag.identifier: env_or(flag.env, flag.default) for flag in spec.all_flags()})


def build_command_tree(
    spec: Specification,
    request: Optional[RequestConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> CommandNode:
    """Build the live command tree for *spec*.

    Args:
        spec: The validated specification.
        request: HTTP timeout and TLS settings for step requests.
        transport: Optional transport for the step client (tests pass an
            :class:`httpx.MockTransport`).

    Returns:
        The root :class:`CommandNode`.
    """
    request = request or RequestConfig()
    store = seed_flag_values(spec)
    root = CommandNode(
        name=spec.name,
        description=spec.description,
        usage=spec.name,
        arity=(0, 0),
        flags=node_flags(spec, None),
        args=[],
        store=store,
    )

    def _build(command: Command, parents: tuple[str, ...]) -> CommandNode:
        path = parents + (command.name,)
        node = CommandNode(
            name=command.name,
            description=command.description,
            usage=usage(command),
            arity=arity(command),
            flags=node_flags(spec, command),
            args=list(command.args),
            store=store,
        )
        if command.is_leaf:
            node.run = _run_handler(spec, command, node, " ".join(path), request, transport)
        node.children = [_build(child, path) for child in command.commands]
        return node

    root.children = [_build(command, ()) for command in spec.commands]
    return root


def _run_handler(
    spec: Specification,
    command: Command,
    node: CommandNode,
    where: str,
    request: RequestConfig,
    transport: Optional[httpx.AsyncBaseTransport],
) -> Callable[[list[str]], None]:
    needed = required_flags(spec, command)
    action = command.action
    assert action is not None

    async def _execute(env: Environment) -> Optional[str]:
        async with make_client(
            timeout=request.timeout, verify=request.verify_ssl, transport=transport
        ) as client:
            return await execute_action(action, env, client, where)

    def run(args: list[str]) -> None:
        node.validate_args(args)
        require_flags(node.store, needed)
        env = Environment.seed(spec, command, node.store, args)
        debug(f"running {where} with {len(args)} argument(s)")
        text = asyncio.run(_execute(env))
        if text:
            get_output().write_data(text)

    return run


def _flag_option(flag: Flag, store: FlagValues) -> click.Option:
    decls = [f"--{flag.name}"]
    if flag.short:
        decls.append(f"-{flag.short}")
    decls.append(flag.identifier)
    return click.Option(
        decls,
        default=store[flag.identifier],
        show_default=flag.default or False,
        expose_value=False,
        callback=store.store,
        help=flag_help(flag) or None,
    )


def to_click(node: CommandNode, root_name: Optional[str] = None) -> click.Command:
    """Bind *node* (recursively) to ``click`` objects.

    Args:
        node: The node to bind.
        root_name: Override for the top-level command name.
    """
    params: list[click.Parameter] = [_flag_option(flag, node.store) for flag in node.flags]
    name = root_name or node.name
    help_text = node.description or None

    if not node.is_leaf:
        group = click.Group(name=name, help=help_text, params=params)
        for child in node.children:
            group.add_command(to_click(child))
        return group

    params.append(click.Argument(["_positionals"], nargs=-1, metavar=arg_usage(node.args)))
    run = node.run
    assert run is not None

    def callback(_positionals: tuple[str, ...]) -> None:
        run(list(_positionals))

    return click.Command(name=name, help=help_text, params=params, callback=callback)
