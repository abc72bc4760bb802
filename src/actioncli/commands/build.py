"""Build commands -- compile a specification into a standalone program.

This module implements the ``actioncli build`` command group:

* **source** -- print (or write) the generated ``click`` + ``httpx``
  program. When the formatter rejects it, the raw source is still emitted
  and a warning explains why.
* **generate** -- write a pip-installable package around the program.
* **compile** -- freeze the program into a standalone binary with
  PyInstaller; toolchain diagnostics are reported verbatim on failure.

Usage::

    actioncli build source -c vault.yaml -f vault.py
    actioncli build generate -c vault.yaml --name vault-cli
    actioncli build compile -c vault.yaml --name vault --onedir
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from actioncli.commands import CONFIG_OPTION, fail, load_active_spec
from actioncli.exceptions import ActioncliError, BuildError
from actioncli.output import error, get_output, info, progress, success, suggest, warning

build_app = typer.Typer(no_args_is_help=True)


def _generate(config: Optional[str], no_format: bool):  # noqa: ANN202
    """Load the specification and generate its program.

    Returns:
        ``(spec, global_config, generated)``.
    """
    from actioncli.generator import generate_source

    spec, global_cfg = load_active_spec(config)
    formatted = global_cfg.build.format_source and not no_format
    generated = generate_source(spec, request=global_cfg.request, format=formatted)
    if generated.format_error is not None:
        warning(str(generated.format_error))
        warning("Emitting unformatted source.")
    return spec, global_cfg, generated


@build_app.command("source")
def build_source(
    config: Optional[str] = CONFIG_OPTION,
    file: Optional[str] = typer.Option(
        None, "--file", "-f", help="Write the program here instead of stdout."
    ),
    no_format: bool = typer.Option(False, "--no-format", help="Skip black formatting."),
) -> None:
    """Generate the program for a specification.

    Example::

        actioncli build source -c vault.yaml > vault.py
        python vault.py kv get secret/app
    """
    try:
        spec, _, generated = _generate(config, no_format)
    except ActioncliError as exc:
        raise fail(exc) from None

    if file is None:
        get_output().write_data(generated.source)
        return
    Path(file).write_text(generated.source, encoding="utf-8")
    success(f"Wrote {spec.name} program to {file}")
    suggest(f"Try it: python {file} --help")


@build_app.command("generate")
def build_generate(
    config: Optional[str] = CONFIG_OPTION,
    name: Optional[str] = typer.Option(
        None, "--name", "-n", help="Package/CLI name. Defaults to the specification name."
    ),
    output_dir: Optional[str] = typer.Option(
        None, "--output-dir", "-d", help="Parent directory for the package."
    ),
    no_format: bool = typer.Option(False, "--no-format", help="Skip black formatting."),
) -> None:
    """Generate a pip-installable package.

    The generated package structure::

        <name>/
            pyproject.toml
            src/<pkg_name>/
                __init__.py
                __main__.py
                cli.py

    Example::

        actioncli build generate -c vault.yaml --name vault-cli
        pip install ./dist/vault-cli
    """
    from actioncli.generator import write_package

    try:
        spec, global_cfg, generated = _generate(config, no_format)
    except ActioncliError as exc:
        raise fail(exc) from None

    pkg_dir = write_package(
        generated.source,
        name or spec.name,
        output_dir or global_cfg.build.output_dir,
        version=spec.version,
        description=spec.description,
        features=generated.features,
    )
    success(f"Package generated: {pkg_dir}")
    suggest(f"Install it: pip install {pkg_dir}")


@build_app.command("compile")
def build_compile(
    config: Optional[str] = CONFIG_OPTION,
    name: Optional[str] = typer.Option(
        None, "--name", "-n", help="Binary name. Defaults to the specification name."
    ),
    output_dir: Optional[str] = typer.Option(
        None, "--output-dir", "-d", help="Directory for the binary."
    ),
    onedir: bool = typer.Option(
        False, "--onedir", help="Produce a directory bundle instead of a single file."
    ),
    keep_build: bool = typer.Option(
        False, "--keep-build", help="Keep the temporary PyInstaller work directory."
    ),
    no_format: bool = typer.Option(False, "--no-format", help="Skip black formatting."),
) -> None:
    """Compile a standalone binary with PyInstaller.

    Example::

        actioncli build compile -c vault.yaml --name vault
        ./dist/vault --help
    """
    from actioncli.generator.toolchain import compile_binary, pyinstaller_available

    try:
        spec, global_cfg, generated = _generate(config, no_format)
    except ActioncliError as exc:
        raise fail(exc) from None

    if not pyinstaller_available():
        error("PyInstaller is not installed.")
        suggest("Install it: pip install pyinstaller")
        raise typer.Exit(code=BuildError.exit_code)

    binary_name = name or spec.name
    info(f"Building {binary_name}...")
    progress("Running PyInstaller, this can take a minute.")
    try:
        binary = compile_binary(
            generated.source,
            binary_name,
            output_dir or global_cfg.build.output_dir,
            onedir=onedir,
            clean=not keep_build,
        )
    except BuildError as exc:
        error(str(exc))
        for line in exc.output.splitlines()[-20:]:
            error(f"  {line}")
        raise typer.Exit(code=exc.exit_code) from None

    size_mb = binary.stat().st_size / (1024 * 1024)
    success(f"Built: {binary} ({size_mb:.1f} MB)")
    suggest(f"Test it: {binary} --help")
