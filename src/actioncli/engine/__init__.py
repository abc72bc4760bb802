"""Backend-neutral core shared by the compiler and the interpreter.

Sub-modules:

* :mod:`~actioncli.engine.resolver` -- the single expression walker,
  parameterised by a backend that either emits source fragments or
  produces live values.
* :mod:`~actioncli.engine.policy` -- command-tree policies both backends
  apply identically: usage strings, argument arity, flag help, and the
  default output data.
"""

from actioncli.engine.policy import arity, output_data_expression, usage
from actioncli.engine.resolver import Backend, Scope, resolve

__all__ = ["Backend", "Scope", "arity", "output_data_expression", "resolve", "usage"]
