"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~actioncli.exceptions.ActioncliError` subclass.
Shell wrappers and CI scripts can inspect the exit code to tell a bad
specification apart from a failing HTTP step without parsing stderr.

Example::

    $ actioncli run -c vault.yaml -- kv get secret/app
    $ echo $?
    4   # EXIT_STEP_FAILURE -- an HTTP step failed
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_REFERENCE_ERROR = 3
"""An expression referenced an unknown flag, argument, or step."""

EXIT_STEP_FAILURE = 4
"""An HTTP step failed (transport error, non-2xx status, or cancellation)."""

EXIT_RENDER_ERROR = 5
"""Output data did not match the shape the output format requires."""

EXIT_BUILD_ERROR = 6
"""The external toolchain failed to freeze generated source into a binary."""

EXIT_SPEC_PARSE_ERROR = 7
"""The CLI specification could not be loaded or failed validation."""
