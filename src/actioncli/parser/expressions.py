"""Parse document values into expression trees.

The textual syntax is intentionally small:

* ``${flag.name}``, ``${arg.name}`` and ``${step.name.a.b}`` interpolate a
  reference. Flag and argument references take exactly one name; step
  references may continue with a path into the step result.
* ``$${`` escapes a literal ``${``.
* A string that is exactly one interpolation yields the referenced value
  itself (a dict stays a dict); any surrounding text makes it a
  :class:`~actioncli.models.TemplateExpr` that stringifies each reference.
* A string with no interpolation is a literal, as are numbers, booleans
  and null. Mappings and sequences become object and list expressions
  whose members are parsed recursively.

:func:`unparse` turns an expression back into its document form, which is
what ``actioncli inspect`` prints.
"""

from __future__ import annotations

from typing import Any, Union

from actioncli.exceptions import ExpressionSyntaxError
from actioncli.models import (
    Expression,
    ListExpr,
    LiteralExpr,
    Namespace,
    ObjectExpr,
    ReferenceExpr,
    TemplateExpr,
)

_OPEN = "${"
_ESCAPED_OPEN = "$${"


def parse_expression(value: Any) -> Expression:
    """Parse a raw document value into an :data:`~actioncli.models.Expression`.

    Args:
        value: A string, mapping, sequence, or scalar from a YAML/JSON
            document.

    Returns:
        The parsed, frozen expression.

    Raises:
        ExpressionSyntaxError: On a malformed interpolation or an
            unsupported value type.
    """
    if isinstance(value, str):
        return parse_template(value)
    if isinstance(value, dict):
        return ObjectExpr(
            items=tuple((str(key), parse_expression(item)) for key, item in value.items())
        )
    if isinstance(value, (list, tuple)):
        return ListExpr(items=tuple(parse_expression(item) for item in value))
    if value is None or isinstance(value, (bool, int, float)):
        return LiteralExpr(value=value)
    raise ExpressionSyntaxError(
        f"unsupported expression value of type {type(value).__name__}"
    )


def parse_template(text: str) -> Expression:
    """Parse a string with ``${...}`` interpolations."""
    parts: list[Union[str, ReferenceExpr]] = []
    buffer: list[str] = []
    i = 0
    while i < len(text):
        if text.startswith(_ESCAPED_OPEN, i):
            buffer.append(_OPEN)
            i += len(_ESCAPED_OPEN)
            continue
        if text.startswith(_OPEN, i):
            end = text.find("}", i + len(_OPEN))
            if end < 0:
                raise ExpressionSyntaxError(
                    f"unterminated '${{' at offset {i} in {text!r}"
                )
            if buffer:
                parts.append("".join(buffer))
                buffer = []
            parts.append(parse_reference(text[i + len(_OPEN):end], text))
            i = end + 1
            continue
        buffer.append(text[i])
        i += 1
    if buffer:
        parts.append("".join(buffer))

    if not any(isinstance(part, ReferenceExpr) for part in parts):
        return LiteralExpr(value="".join(parts))
    if len(parts) == 1:
        return parts[0]
    return TemplateExpr(parts=tuple(parts))


def parse_reference(body: str, text: str = "") -> ReferenceExpr:
    """Parse the inside of one ``${...}`` interpolation.

    Args:
        body: Dotted reference such as ``step.read.body.data``.
        text: The enclosing template, used in error messages.

    Raises:
        ExpressionSyntaxError: For an unknown namespace, an empty segment,
            or a path on a flag/arg reference.
    """
    where = f" in {text!r}" if text else ""
    segments = [segment.strip() for segment in body.strip().split(".")]
    if len(segments) < 2 or not all(segments):
        raise ExpressionSyntaxError(
            f"malformed reference '${{{body}}}'{where}: expected namespace.name"
        )
    try:
        namespace = Namespace(segments[0])
    except ValueError:
        raise ExpressionSyntaxError(
            f"unknown namespace {segments[0]!r}{where}: expected flag, arg or step"
        ) from None
    if namespace != Namespace.STEP and len(segments) != 2:
        raise ExpressionSyntaxError(
            f"{namespace.value} reference '${{{body}}}'{where} takes exactly one name"
        )
    return ReferenceExpr(namespace=namespace, name=segments[1], path=tuple(segments[2:]))


def unparse(expr: Expression) -> Any:
    """Return the document form of *expr* (inverse of :func:`parse_expression`)."""
    if isinstance(expr, LiteralExpr):
        if isinstance(expr.value, str):
            return expr.value.replace(_OPEN, _ESCAPED_OPEN)
        return expr.value
    if isinstance(expr, ReferenceExpr):
        return str(expr)
    if isinstance(expr, TemplateExpr):
        return "".join(
            str(part) if isinstance(part, ReferenceExpr) else part.replace(_OPEN, _ESCAPED_OPEN)
            for part in expr.parts
        )
    if isinstance(expr, ObjectExpr):
        return {key: unparse(value) for key, value in expr.items}
    return [unparse(item) for item in expr.items]
