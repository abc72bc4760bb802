"""Interpreting backend -- execute a specification without generating code.

Typical usage::

    from actioncli.interpreter import build_command_tree, to_click

    root = build_command_tree(spec)
    to_click(root).main(args=["kv", "get", "secret/app"], prog_name=spec.name)

Sub-modules:

* :mod:`~actioncli.interpreter.environment` -- per-execution state and the
  value-producing resolver backend.
* :mod:`~actioncli.interpreter.executor` -- the sequential step executor
  and output rendering dispatch.
* :mod:`~actioncli.interpreter.command_tree` -- live command nodes and their
  ``click`` binding.
"""

from actioncli.interpreter.command_tree import CommandNode, build_command_tree, to_click
from actioncli.interpreter.environment import Environment, ValueBackend
from actioncli.interpreter.executor import execute_action, render_output

__all__ = [
    "CommandNode",
    "Environment",
    "ValueBackend",
    "build_command_tree",
    "execute_action",
    "render_output",
    "to_click",
]
