"""Feature-usage scanning for generated programs.

A generated program embeds only the support routines (and imports only the
modules) it actually uses. :func:`scan_features` walks the specification
once and aggregates a :class:`Feature` set; :func:`routines_for` and
:func:`imports_for` turn that set into what the emitter writes.
"""

from __future__ import annotations

import enum
from typing import Optional

from actioncli.engine.policy import output_data_expression
from actioncli.models import (
    Command,
    Expression,
    ListExpr,
    Namespace,
    ObjectExpr,
    ReferenceExpr,
    RenderFormat,
    Specification,
    TemplateExpr,
)


class Feature(enum.Flag):
    """Capabilities a generated program may need."""

    NONE = 0
    ENV = enum.auto()
    FLAGS = enum.auto()
    REQUIRED = enum.auto()
    ARITY = enum.auto()
    HTTP = enum.auto()
    PATH = enum.auto()
    STRINGIFY = enum.auto()
    JSON = enum.auto()
    TABLE = enum.auto()
    TEXT = enum.auto()
    RUNNER = enum.auto()


# Features that pull in others.
_IMPLIES: dict[Feature, Feature] = {
    Feature.HTTP: Feature.STRINGIFY | Feature.RUNNER,
    Feature.TABLE: Feature.STRINGIFY | Feature.RUNNER,
    Feature.TEXT: Feature.STRINGIFY,
    Feature.REQUIRED: Feature.FLAGS,
    Feature.ENV: Feature.FLAGS,
}

# Support routines in the order they are emitted, with the feature gating each.
ROUTINES: tuple[tuple[str, Feature], ...] = (
    ("ActionFailure", Feature.RUNNER),
    ("StepFailure", Feature.HTTP),
    ("RenderFailure", Feature.TABLE),
    ("env_or", Feature.ENV),
    ("FlagValues", Feature.FLAGS),
    ("require_flags", Feature.REQUIRED),
    ("check_arity", Feature.ARITY),
    ("json_path", Feature.PATH),
    ("stringify", Feature.STRINGIFY),
    ("make_client", Feature.HTTP),
    ("request_body", Feature.HTTP),
    ("http_step", Feature.HTTP),
    ("render_json", Feature.JSON),
    ("render_table", Feature.TABLE),
    ("render_text", Feature.TEXT),
    ("emit_output", Feature.RUNNER),
    ("run_action", Feature.RUNNER),
)

# Standard-library modules, then third-party ones.
_STDLIB_IMPORTS: tuple[tuple[str, Feature], ...] = (
    ("asyncio", Feature.RUNNER | Feature.HTTP),
    ("json", Feature.STRINGIFY | Feature.JSON | Feature.HTTP),
    ("os", Feature.ENV),
)
_THIRD_PARTY_IMPORTS: tuple[tuple[str, Feature], ...] = (
    ("httpx", Feature.HTTP),
)

_FORMAT_FEATURES = {
    RenderFormat.JSON: Feature.JSON,
    RenderFormat.TABLE: Feature.TABLE,
    RenderFormat.TEXT: Feature.TEXT,
}


def close(features: Feature) -> Feature:
    """Add every feature implied by *features* until nothing changes."""
    while True:
        expanded = features
        for feature, implied in _IMPLIES.items():
            if feature in expanded:
                expanded |= implied
        if expanded == features:
            return features
        features = expanded


def expression_features(expr: Optional[Expression]) -> Feature:
    if isinstance(expr, TemplateExpr):
        found = Feature.STRINGIFY
        for part in expr.parts:
            if isinstance(part, ReferenceExpr):
                found |= expression_features(part)
        return found
    if isinstance(expr, ReferenceExpr):
        if expr.namespace == Namespace.STEP and expr.path:
            return Feature.PATH
        return Feature.NONE
    if isinstance(expr, ObjectExpr):
        found = Feature.NONE
        for _, value in expr.items:
            found |= expression_features(value)
        return found
    if isinstance(expr, ListExpr):
        found = Feature.NONE
        for item in expr.items:
            found |= expression_features(item)
        return found
    return Feature.NONE


def scan_features(spec: Specification) -> Feature:
    """Aggregate the features *spec* needs in one walk of the tree."""
    found = Feature.NONE

    def _flags(flags: list) -> None:
        nonlocal found
        for flag in flags:
            found |= Feature.FLAGS
            if flag.env:
                found |= Feature.ENV
            if flag.required:
                found |= Feature.REQUIRED

    def _walk(commands: list[Command]) -> None:
        nonlocal found
        for command in commands:
            _flags(command.flags)
            if command.action is not None:
                action = command.action
                found |= Feature.ARITY | Feature.RUNNER
                for step in action.steps:
                    found |= Feature.HTTP
                    for expr in (step.url, step.headers, step.body):
                        found |= expression_features(expr)
                if action.output is not None:
                    found |= _FORMAT_FEATURES[action.output.format]
                    found |= expression_features(output_data_expression(action))
            _walk(command.commands)

    _flags(spec.flags)
    _walk(spec.commands)
    return close(found)


def routines_for(features: Feature) -> list[str]:
    return [name for name, feature in ROUTINES if feature & features]


def imports_for(features: Feature) -> tuple[list[str], list[str]]:
    """Return ``(stdlib, third_party)`` module names; ``click`` is always needed."""
    stdlib = [name for name, feature in _STDLIB_IMPORTS if feature & features]
    third_party = ["click"] + [name for name, feature in _THIRD_PARTY_IMPORTS if feature & features]
    return stdlib, third_party
