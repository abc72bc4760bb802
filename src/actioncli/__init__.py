"""actioncli -- Turn declarative CLI specifications into working command-line tools.

A specification describes commands, flags and positional arguments, and for
each leaf command an *action*: a sequence of HTTP steps plus an output
renderer. actioncli realises a specification in one of two equivalent ways:

* **interpreting** -- build a live command tree and execute it directly::

      actioncli run -c vault.yaml -- kv get secret/app

* **compiling** -- generate a standalone ``click`` program and optionally
  freeze it into a binary::

      actioncli build source -c vault.yaml -o vault.py
      actioncli build compile -c vault.yaml --name vault

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models for specifications, expressions and config.
    runtime: Support routines shared by both backends.
    config: XDG-aware configuration and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
