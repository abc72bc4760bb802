"""Specification parser -- load documents and validate them into models.

This sub-package is the front door of the actioncli pipeline: it turns a raw
YAML or JSON document (local file, remote URL, or stdin) into a validated
:class:`~actioncli.models.Specification` that both backends consume.

Typical usage::

    from actioncli.parser import load_specification

    spec = load_specification("vault.yaml")

Sub-modules:

* :mod:`~actioncli.parser.loader` -- I/O layer (URL, file, stdin) plus format
  detection.
* :mod:`~actioncli.parser.expressions` -- ``${...}`` template parsing into
  expression trees.

A document may hold the specification at its top level or nested under a
``cli`` key, so a larger configuration file can carry its CLI block.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from actioncli.exceptions import SpecParseError
from actioncli.models import Specification
from actioncli.parser.expressions import parse_expression, parse_template, unparse
from actioncli.parser.loader import load_document


def parse_specification(data: dict[str, Any]) -> Specification:
    """Validate a raw document into a :class:`~actioncli.models.Specification`.

    Raises:
        SpecParseError: If the document does not describe a valid CLI. The
            message lists every validation failure with its location.
    """
    if "cli" in data and isinstance(data["cli"], dict):
        data = data["cli"]
    try:
        return Specification.model_validate(data)
    except ValidationError as exc:
        problems = []
        for err in exc.errors():
            loc = ".".join(str(part) for part in err["loc"]) or "<root>"
            problems.append(f"  {loc}: {err['msg']}")
        raise SpecParseError(
            "Invalid CLI specification:\n" + "\n".join(problems)
        ) from exc


def load_specification(source: str) -> Specification:
    """Load and validate a specification from a URL, file path, or ``-``."""
    return parse_specification(load_document(source))


__all__ = [
    "load_document",
    "load_specification",
    "parse_expression",
    "parse_specification",
    "parse_template",
    "unparse",
]
