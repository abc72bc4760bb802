"""Turn generated source into something installable or executable.

Two outputs are supported:

* :func:`compile_binary` -- freeze the program into a standalone executable
  with PyInstaller. Toolchain failures raise
  :class:`~actioncli.exceptions.BuildError` carrying the captured output,
  which callers report verbatim.
* :func:`write_package` -- write a pip-installable package directory::

      <name>/
          pyproject.toml
          src/<pkg_name>/
              __init__.py
              __main__.py
              cli.py          # the generated program

Generated programs depend only on ``click`` (and ``httpx`` when any
action performs HTTP steps), never on actioncli itself.
"""

from __future__ import annotations

import shutil
import subprocess
import sys
import tempfile
from pathlib import Path

from actioncli.exceptions import BuildError
from actioncli.generator.features import Feature

_BUILD_TIMEOUT = 300


def pyinstaller_available() -> bool:
    """Check whether PyInstaller is importable, in a subprocess.

    Spawning a subprocess avoids importing PyInstaller into this process.
    """
    try:
        result = subprocess.run(
            [sys.executable, "-c", "import PyInstaller"],
            capture_output=True,
            timeout=10,
        )
    except (OSError, subprocess.TimeoutExpired):
        return False
    return result.returncode == 0


def binary_path(name: str, output_dir: Path, onedir: bool = False) -> Path:
    return output_dir / name / name if onedir else output_dir / name


def compile_binary(
    source: str,
    name: str,
    output_dir: str | Path,
    onedir: bool = False,
    clean: bool = True,
) -> Path:
    """Freeze *source* into a standalone executable.

    Args:
        source: The generated program.
        name: Executable name.
        output_dir: Directory receiving the binary (created if missing).
        onedir: Produce a directory bundle instead of a single file.
        clean: Remove the temporary build directory afterwards.

    Returns:
        Path to the produced executable.

    Raises:
        BuildError: If PyInstaller cannot be started, times out, exits
            non-zero, or does not produce the expected binary.
    """
    build_dir = Path(tempfile.mkdtemp(prefix=f"actioncli-build-{name}-"))
    entry_file = build_dir / f"{name.replace('-', '_')}_entry.py"
    entry_file.write_text(source, encoding="utf-8")

    dist_path = Path(output_dir).resolve()
    dist_path.mkdir(parents=True, exist_ok=True)

    args = [
        sys.executable, "-m", "PyInstaller",
        "--name", name,
        "--distpath", str(dist_path),
        "--workpath", str(build_dir / "build"),
        "--specpath", str(build_dir),
        "--noconfirm",
        "--clean",
        "--log-level", "WARN",
        "--onedir" if onedir else "--onefile",
        str(entry_file),
    ]

    try:
        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=_BUILD_TIMEOUT,
            )
        except subprocess.TimeoutExpired as exc:
            captured = exc.stderr or ""
            if isinstance(captured, bytes):
                captured = captured.decode("utf-8", "replace")
            raise BuildError(
                f"Build timed out after {_BUILD_TIMEOUT // 60} minutes", captured
            ) from exc
        except FileNotFoundError as exc:
            raise BuildError(f"Cannot start PyInstaller: {exc}") from exc

        if result.returncode != 0:
            raise BuildError(
                f"PyInstaller exited with status {result.returncode}",
                (result.stderr or "") + (result.stdout or ""),
            )

        produced = binary_path(name, dist_path, onedir)
        if not produced.exists():
            raise BuildError(f"Expected binary not found at: {produced}", result.stderr or "")
        return produced
    finally:
        if clean:
            shutil.rmtree(build_dir, ignore_errors=True)


def write_package(
    source: str,
    name: str,
    output_dir: str | Path,
    version: str = "0.1.0",
    description: str = "",
    features: Feature = Feature.NONE,
) -> Path:
    """Write a pip-installable package around *source*.

    Returns:
        The package directory.
    """
    pkg_name = name.replace("-", "_")
    pkg_dir = Path(output_dir).resolve() / name
    src_dir = pkg_dir / "src" / pkg_name
    src_dir.mkdir(parents=True, exist_ok=True)

    (src_dir / "__init__.py").write_text(f'"""Generated CLI: {name}."""\n', encoding="utf-8")
    (src_dir / "__main__.py").write_text(f"from {pkg_name}.cli import cli\n\ncli()\n", encoding="utf-8")
    (src_dir / "cli.py").write_text(source, encoding="utf-8")

    dependencies = ['    "click>=8.1",']
    if Feature.HTTP in features:
        dependencies.append('    "httpx>=0.27",')
    summary = (description or f"CLI for {name}").replace('"', '\\"')

    pyproject = f"""\
[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "{name}"
version = "{version}"
description = "{summary}"
requires-python = ">=3.10"
dependencies = [
{chr(10).join(dependencies)}
]

[project.scripts]
{name} = "{pkg_name}.cli:cli"

[tool.hatch.build.targets.wheel]
packages = ["src/{pkg_name}"]
"""
    (pkg_dir / "pyproject.toml").write_text(pyproject, encoding="utf-8")
    return pkg_dir
