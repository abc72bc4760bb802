"""Validate command -- check a specification without running it.

Loading already enforces the structural rules (unique names, no command with
both an action and sub-commands, columns only for tables). ``validate`` then
resolves every expression by generating the program in memory, so unknown
flag, argument and step references are reported up front rather than when a
command first runs.
"""

from __future__ import annotations

from typing import Optional

from actioncli.commands import CONFIG_OPTION, fail, load_active_spec
from actioncli.engine.policy import iter_commands
from actioncli.exceptions import ActioncliError
from actioncli.models import Specification
from actioncli.output import success, warning


def lint_specification(spec: Specification) -> list[str]:
    """Return warnings for legal but suspicious constructs."""
    warnings: list[str] = []
    for path, command in iter_commands(spec.commands):
        where = " ".join(path)
        seen_optional = False
        for arg in command.args:
            if not arg.required:
                seen_optional = True
            elif seen_optional:
                warnings.append(
                    f'command "{where}": required argument "{arg.name}" follows an optional one'
                )
        if not command.is_leaf and not command.commands:
            warnings.append(f'command "{where}" has neither an action nor sub-commands')
        if command.action is not None and not command.action.steps and command.action.output is None:
            warnings.append(f'command "{where}" has an empty action')
    return warnings


def validate_command(config: Optional[str] = CONFIG_OPTION) -> None:
    """Validate a CLI specification.

    Example::

        actioncli validate -c vault.yaml
    """
    from actioncli.generator import generate_source

    try:
        spec, _ = load_active_spec(config)
        generate_source(spec, format=False)
    except ActioncliError as exc:
        raise fail(exc) from None

    for message in lint_specification(spec):
        warning(message)
    commands = sum(1 for _ in iter_commands(spec.commands))
    success(
        f"Specification {spec.name!r} is valid "
        f"({commands} commands, {len(spec.all_flags())} flags)."
    )
