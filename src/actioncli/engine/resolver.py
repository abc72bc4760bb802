"""Resolve expressions against a namespace table.

There is exactly one walker, :func:`resolve`. What it produces depends on
the :class:`Backend` it is given:

* :class:`~actioncli.generator.source.SourceBackend` returns Python source
  fragments that compute the value at run time;
* :class:`~actioncli.interpreter.environment.ValueBackend` returns the value
  itself, computed from a live environment.

Name lookup, namespace rules, error reporting and template concatenation
order therefore cannot drift between the backends; only the final
representation differs.

Unknown names raise :class:`~actioncli.exceptions.UnknownFlagError`,
:class:`~actioncli.exceptions.UnknownArgError` or
:class:`~actioncli.exceptions.UnknownStepError`. Resolution has no side
effects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, TypeVar

from actioncli.exceptions import UnknownArgError, UnknownFlagError, UnknownStepError
from actioncli.models import (
    Expression,
    ListExpr,
    LiteralExpr,
    Namespace,
    ObjectExpr,
    ReferenceExpr,
    TemplateExpr,
)

T = TypeVar("T")


class Backend(Protocol[T]):
    """What :func:`resolve` needs from a backend.

    ``flag`` and ``step`` receive whatever binding the :class:`Scope` holds
    for the name (a variable name when generating source, the value itself
    when interpreting). Templates are built from ``text`` pieces and
    ``interpolate``-d references, joined by ``concat``.
    """

    def literal(self, value: Any) -> T: ...

    def flag(self, binding: Any) -> T: ...

    def arg(self, position: int) -> T: ...

    def step(self, binding: Any, path: tuple[str, ...]) -> T: ...

    def text(self, value: str) -> T: ...

    def interpolate(self, resolved: T) -> T: ...

    def concat(self, pieces: list[T]) -> T: ...

    def mapping(self, items: list[tuple[str, T]]) -> T: ...

    def sequence(self, items: list[T]) -> T: ...


@dataclass
class Scope:
    """Names visible to an expression.

    Attributes:
        flags: Flag name to binding. Flags share one flat namespace.
        args: Argument name to its declared position.
        steps: Step name to binding. Grows in declaration order, so only
            steps that ran before the current one are visible.
    """

    flags: dict[str, Any] = field(default_factory=dict)
    args: dict[str, int] = field(default_factory=dict)
    steps: dict[str, Any] = field(default_factory=dict)

    def bind_step(self, name: str, binding: Any) -> None:
        self.steps[name] = binding


def resolve(
    expr: Expression,
    scope: Scope,
    backend: "Backend[T]",
    location: Optional[str] = None,
) -> T:
    """Resolve *expr* with *backend*.

    Args:
        expr: The expression to resolve.
        scope: Names currently in scope.
        backend: Produces the representation (source or value).
        location: Human-readable position of *expr* in the specification,
            attached to any reference error.

    Raises:
        ReferenceError_: When a reference names something not in *scope*.
    """
    if isinstance(expr, LiteralExpr):
        return backend.literal(expr.value)
    if isinstance(expr, ReferenceExpr):
        return _resolve_reference(expr, scope, backend, location)
    if isinstance(expr, TemplateExpr):
        pieces = [
            backend.interpolate(_resolve_reference(part, scope, backend, location))
            if isinstance(part, ReferenceExpr)
            else backend.text(part)
            for part in expr.parts
        ]
        return backend.concat(pieces)
    if isinstance(expr, ObjectExpr):
        return backend.mapping(
            [(key, resolve(value, scope, backend, location)) for key, value in expr.items]
        )
    if isinstance(expr, ListExpr):
        return backend.sequence([resolve(item, scope, backend, location) for item in expr.items])
    raise TypeError(f"not an expression: {expr!r}")


def _resolve_reference(
    ref: ReferenceExpr,
    scope: Scope,
    backend: "Backend[T]",
    location: Optional[str],
) -> T:
    if ref.namespace == Namespace.FLAG:
        if ref.name not in scope.flags:
            raise UnknownFlagError(ref.name, location)
        return backend.flag(scope.flags[ref.name])
    if ref.namespace == Namespace.ARG:
        if ref.name not in scope.args:
            raise UnknownArgError(ref.name, location)
        return backend.arg(scope.args[ref.name])
    if ref.name not in scope.steps:
        raise UnknownStepError(ref.name, location)
    return backend.step(scope.steps[ref.name], ref.path)
