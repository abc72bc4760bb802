"""Live evaluation state for one action execution."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from actioncli.engine.policy import arg_positions
from actioncli.engine.resolver import Scope, resolve
from actioncli.models import Command, Expression, Specification
from actioncli.runtime import json_path, stringify


class ValueBackend:
    """Resolver backend producing live values.

    Flag and step bindings are the values themselves; arguments are read
    from the supplied positional list, and a position beyond it (an
    omitted optional argument) yields ``None``.
    """

    def __init__(self, argv: list[str]) -> None:
        self.argv = argv

    def literal(self, value: Any) -> Any:
        return value

    def flag(self, binding: Any) -> Any:
        return binding

    def arg(self, position: int) -> Any:
        return self.argv[position] if position < len(self.argv) else None

    def step(self, binding: Any, path: tuple[str, ...]) -> Any:
        return json_path(binding, *path)

    def text(self, value: str) -> str:
        return value

    def interpolate(self, resolved: Any) -> str:
        return stringify(resolved)

    def concat(self, pieces: list[str]) -> str:
        return "".join(pieces)

    def mapping(self, items: list[tuple[str, Any]]) -> dict[str, Any]:
        return dict(items)

    def sequence(self, items: list[Any]) -> list[Any]:
        return list(items)


@dataclass
class Environment:
    """Flag values, positional arguments and step results of one execution.

    Step results are only ever added, in execution order, so an expression
    sees exactly the steps that completed before it.
    """

    flags: dict[str, Any]
    positions: dict[str, int]
    argv: list[str]
    steps: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def seed(
        cls,
        spec: Specification,
        command: Command,
        values: dict[str, Any],
        argv: list[str],
    ) -> "Environment":
        """Build the initial environment for *command*.

        Args:
            spec: The specification (for the flat flag namespace).
            command: The leaf being executed.
            values: Current flag values keyed by identifier.
            argv: Positional arguments as supplied.
        """
        flags = {flag.name: values.get(flag.identifier, flag.default) for flag in spec.all_flags()}
        return cls(flags=flags, positions=arg_positions(command), argv=list(argv))

    def record(self, name: str, result: Any) -> None:
        self.steps[name] = result

    def scope(self) -> Scope:
        return Scope(flags=dict(self.flags), args=dict(self.positions), steps=dict(self.steps))

    def evaluate(self, expr: Expression, location: Optional[str] = None) -> Any:
        """Resolve *expr* against the environment as it stands now."""
        return resolve(expr, self.scope(), ValueBackend(self.argv), location)
