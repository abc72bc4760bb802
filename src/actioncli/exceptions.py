"""Exception hierarchy for actioncli.

All exceptions inherit from :class:`ActioncliError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`actioncli.exit_codes`.
The top-level error handler in :func:`actioncli.app.main` catches
``ActioncliError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    ActioncliError (exit 1)
    +-- InvalidUsageError      (exit 2)
    +-- ReferenceError_        (exit 3)
    |   +-- UnknownFlagError
    |   +-- UnknownArgError
    |   +-- UnknownStepError
    +-- StepExecutionError     (exit 4)
    +-- RenderError            (exit 5)
    +-- BuildError             (exit 6)
    +-- SpecParseError         (exit 7)
    |   +-- ExpressionSyntaxError
    +-- FormatError            (exit 1, non-fatal)
    +-- ConfigError            (exit 1)
"""

from __future__ import annotations

from typing import Optional

from actioncli.exit_codes import (
    EXIT_BUILD_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_REFERENCE_ERROR,
    EXIT_RENDER_ERROR,
    EXIT_SPEC_PARSE_ERROR,
    EXIT_STEP_FAILURE,
)


class ActioncliError(Exception):
    """Base exception for all actioncli errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`actioncli.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(ActioncliError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class ReferenceError_(ActioncliError):
    """Raised when an expression names a flag, argument, or step that does not exist.

    Named with a trailing underscore to avoid shadowing the built-in
    ``ReferenceError``. The ``kind`` class attribute is overridden by the
    concrete subclasses and appears in the message, so ``unknown flag "x"``
    and ``unknown step "x"`` are distinguishable.

    Args:
        name: The identifier that failed to resolve.
        location: Where the reference was found, e.g.
            ``command "kv get", step "read", field "url"``.
    """

    exit_code = EXIT_REFERENCE_ERROR
    kind = "reference"

    def __init__(self, name: str, location: Optional[str] = None):
        self.name = name
        self.location = location
        message = f'unknown {self.kind} "{name}"'
        if location:
            message = f"{message} (in {location})"
        super().__init__(message)

    def at(self, location: str) -> "ReferenceError_":
        """Return a copy of this error annotated with *location*."""
        return type(self)(self.name, location)


class UnknownFlagError(ReferenceError_):
    """An expression referenced a flag that is not declared."""

    kind = "flag"


class UnknownArgError(ReferenceError_):
    """An expression referenced an argument not declared on the command."""

    kind = "arg"


class UnknownStepError(ReferenceError_):
    """An expression referenced a step that has not executed yet (or does not exist)."""

    kind = "step"


class StepExecutionError(ActioncliError):
    """Raised when an HTTP step fails; always names the failing step.

    Args:
        step: Name of the step that failed.
        cause: Description of the underlying failure (transport error,
            non-2xx status line, or cancellation).
    """

    exit_code = EXIT_STEP_FAILURE

    def __init__(self, step: str, cause: str):
        self.step = step
        self.cause = cause
        super().__init__(f'step "{step}" failed: {cause}')


class RenderError(ActioncliError):
    """Raised when output data does not fit the requested format (e.g. table over a non-array)."""

    exit_code = EXIT_RENDER_ERROR


class BuildError(ActioncliError):
    """Raised when the external toolchain fails to produce a binary.

    Args:
        message: Summary of the failure.
        output: Captured toolchain diagnostics, reported verbatim.
    """

    exit_code = EXIT_BUILD_ERROR

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output


class SpecParseError(ActioncliError):
    """Raised when the CLI specification cannot be loaded or fails validation."""

    exit_code = EXIT_SPEC_PARSE_ERROR


class ExpressionSyntaxError(SpecParseError, ValueError):
    """Raised for a malformed ``${...}`` template.

    Also a :class:`ValueError` so that Pydantic field validators surface it
    as an ordinary validation error.
    """


class FormatError(ActioncliError):
    """Non-fatal: the source formatter rejected generated code.

    Carried on :class:`~actioncli.generator.source.GeneratedSource` next to
    the unformatted source rather than raised, so output is never dropped.

    Args:
        message: The formatter's complaint.
        source: The raw, unformatted source.
    """

    def __init__(self, message: str, source: str = ""):
        super().__init__(message)
        self.source = source


class ConfigError(ActioncliError):
    """Raised for configuration problems (invalid JSON, unknown keys, missing spec path)."""

    exit_code = EXIT_GENERIC_FAILURE
