"""Compiling backend -- turn a specification into a standalone program.

Typical usage::

    from actioncli.generator import generate_source, compile_binary

    generated = generate_source(spec)
    if generated.format_error:
        warning(str(generated.format_error))
    compile_binary(generated.source, "vault", "./dist")

Sub-modules:

* :mod:`~actioncli.generator.features` -- one-pass feature scan deciding
  which support routines and imports a program needs.
* :mod:`~actioncli.generator.source` -- the two-pass source generator and
  the formatter fallback.
* :mod:`~actioncli.generator.toolchain` -- PyInstaller compilation and
  package scaffolding.
"""

from actioncli.generator.features import Feature, scan_features
from actioncli.generator.source import GeneratedSource, SourceBackend, generate_source
from actioncli.generator.toolchain import compile_binary, write_package

__all__ = [
    "Feature",
    "GeneratedSource",
    "SourceBackend",
    "compile_binary",
    "generate_source",
    "scan_features",
    "write_package",
]
