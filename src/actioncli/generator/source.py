"""Translate a specification into a standalone ``click`` + ``httpx`` program.

**Algorithm summary**

1. *Pass one* -- assign identifiers. Every flag gets a snake_case storage
   key, every command a function name, and the feature set the program
   needs is aggregated by :func:`~actioncli.generator.features.scan_features`.
2. *Pass two* -- emit the module: docstring, imports, the support routines
   from :mod:`actioncli.runtime` that the features require, the shared flag
   store, one ``click`` group or command per specification command, and one
   ``async`` action function per leaf.
3. Format the result with ``black``. When formatting fails the raw source
   is returned together with a :class:`~actioncli.exceptions.FormatError`;
   generated code is never dropped.

Expressions are turned into source by :class:`SourceBackend`, the
source-producing half of the shared resolver. Reference errors abort
generation; no partial program is returned.

Typical usage::

    from actioncli.generator import generate_source

    generated = generate_source(spec)
    Path("vault.py").write_text(generated.source)
"""

from __future__ import annotations

import inspect
import math
from dataclasses import dataclass
from typing import Any, Optional

import black

from actioncli import __version__, runtime
from actioncli.engine.policy import (
    arg_positions,
    arg_usage,
    arity,
    flag_help,
    node_flags,
    output_data_expression,
    required_flags,
)
from actioncli.engine.resolver import Scope, resolve
from actioncli.exceptions import FormatError
from actioncli.generator.features import (
    ROUTINES,
    Feature,
    imports_for,
    routines_for,
    scan_features,
)
from actioncli.models import (
    Action,
    Command,
    Flag,
    RenderFormat,
    RequestConfig,
    Specification,
)
from actioncli.naming import NameAllocator, to_identifier

# Module-level names a generated program defines itself.
_RESERVED = {"asyncio", "json", "os", "click", "httpx", "cli", "flags", "args", "client"}
_RESERVED.update(name for name, _ in ROUTINES)


@dataclass
class GeneratedSource:
    """Result of :func:`generate_source`.

    Attributes:
        source: The program text, formatted when possible.
        features: Capabilities the program uses.
        format_error: Set when the formatter rejected the program; ``source``
            then holds the raw, unformatted text.
    """

    source: str
    features: Feature = Feature.NONE
    format_error: Optional[FormatError] = None

    @property
    def formatted(self) -> bool:
        return self.format_error is None


class SourceBackend:
    """Resolver backend producing Python expressions as source text.

    Flags read from the shared ``flags`` store, arguments index the
    positional list (guarded when the argument is optional), and step
    references name the step's local variable, descending with
    ``json_path`` when a path is given.
    """

    def __init__(self, required_args: int = 0) -> None:
        self.required_args = required_args

    def literal(self, value: Any) -> str:
        if isinstance(value, float) and not math.isfinite(value):
            return f"float({str(value)!r})"
        return repr(value)

    def flag(self, binding: str) -> str:
        return f"flags[{binding!r}]"

    def arg(self, position: int) -> str:
        if position < self.required_args:
            return f"args[{position}]"
        return f"(args[{position}] if len(args) > {position} else None)"

    def step(self, binding: str, path: tuple[str, ...]) -> str:
        if not path:
            return binding
        return f"json_path({binding}, {', '.join(repr(key) for key in path)})"

    def text(self, value: str) -> str:
        return repr(value)

    def interpolate(self, resolved: str) -> str:
        return f"stringify({resolved})"

    def concat(self, pieces: list[str]) -> str:
        if not pieces:
            return "''"
        return " + ".join(pieces)

    def mapping(self, items: list[tuple[str, str]]) -> str:
        return "{" + ", ".join(f"{key!r}: {value}" for key, value in items) + "}"

    def sequence(self, items: list[str]) -> str:
        return "[" + ", ".join(items) + "]"


@dataclass
class _Node:
    command: Optional[Command]
    path: tuple[str, ...]
    function: str
    parent: Optional[str]
    action_function: Optional[str] = None


class SourceGenerator:
    """Two-pass generator for one specification.

    Args:
        spec: The validated specification.
        request: Timeout and TLS settings baked into the program.
    """

    def __init__(self, spec: Specification, request: Optional[RequestConfig] = None) -> None:
        self.spec = spec
        self.request = request or RequestConfig()
        self.features = Feature.NONE
        self._lines: list[str] = []
        self._flag_idents: dict[str, str] = {}
        self._nodes: list[_Node] = []

    # ---- pass one ----------------------------------------------------- #

    def _plan(self) -> None:
        self.features = scan_features(self.spec)
        self._flag_idents = {flag.name: flag.identifier for flag in self.spec.all_flags()}
        names = NameAllocator(_RESERVED)
        self._nodes = [_Node(command=None, path=(), function="cli", parent=None)]

        def _walk(commands: list[Command], parents: tuple[str, ...], parent_fn: str) -> None:
            for command in commands:
                path = parents + (command.name,)
                base = to_identifier("_".join(path))
                node = _Node(
                    command=command,
                    path=path,
                    function=names.allocate(f"cmd_{base}"),
                    parent=parent_fn,
                )
                if command.is_leaf:
                    node.action_function = names.allocate(f"action_{base}")
                self._nodes.append(node)
                _walk(command.commands, path, node.function)

        _walk(self.spec.commands, (), "cli")

    # ---- pass two ----------------------------------------------------- #

    def generate(self) -> str:
        """Return the unformatted program text.

        Raises:
            ReferenceError_: When an action references an unknown name.
        """
        self._plan()
        self._lines = []
        self._emit_header()
        self._emit_routines()
        self._emit_flag_store()
        self._section("commands")
        for node in self._nodes:
            if node.action_function is not None:
                self._emit_action(node)
            self._emit_command(node)
        self._emit("")
        self._emit("")
        self._emit('if __name__ == "__main__":')
        self._emit("    cli()")
        return "\n".join(self._lines) + "\n"

    def _emit(self, line: str = "") -> None:
        self._lines.append(line)

    def _section(self, title: str) -> None:
        self._emit("")
        self._emit("")
        self._emit(f"# ---- {title} ----")

    def _emit_header(self) -> None:
        title = self.spec.name
        if self.spec.description:
            title = f"{title} -- {self.spec.description}"
        self._emit('"""' + title.replace("\\", "\\\\").replace('"""', "'''"))
        self._emit("")
        self._emit(f"Generated by actioncli {__version__}. Do not edit by hand.")
        self._emit('"""')
        self._emit("")
        self._emit("from __future__ import annotations")
        self._emit("")
        stdlib, third_party = imports_for(self.features)
        for module in stdlib:
            self._emit(f"import {module}")
        if routines_for(self.features):
            self._emit("from typing import Any, Optional")
        self._emit("")
        for module in third_party:
            self._emit(f"import {module}")

    def _emit_routines(self) -> None:
        names = routines_for(self.features)
        if not names:
            return
        self._section("support routines")
        for name in names:
            self._emit("")
            self._emit("")
            self._lines.extend(inspect.getsource(getattr(runtime, name)).rstrip("\n").splitlines())

    def _emit_flag_store(self) -> None:
        flags = self.spec.all_flags()
        if not flags:
            return
        self._section("flags")
        self._emit("")
        self._emit("flags = FlagValues(")
        self._emit("    {")
        for flag in flags:
            default = repr(flag.default)
            if flag.env:
                default = f"env_or({flag.env!r}, {default})"
            self._emit(f"        {flag.identifier!r}: {default},")
        self._emit("    }")
        self._emit(")")

    def _option(self, flag: Flag) -> str:
        decls = [repr(f"--{flag.name}")]
        if flag.short:
            decls.append(repr(f"-{flag.short}"))
        decls.append(repr(flag.identifier))
        kwargs = [
            f"default=flags[{flag.identifier!r}]",
            f"show_default={(flag.default or False)!r}",
            "expose_value=False",
            "callback=flags.store",
        ]
        help_text = flag_help(flag)
        if help_text:
            kwargs.append(f"help={help_text!r}")
        return f"@click.option({', '.join(decls + kwargs)})"

    def _emit_command(self, node: _Node) -> None:
        command = node.command
        name = self.spec.name if command is None else command.name
        description = self.spec.description if command is None else command.description
        kwargs = [f"name={name!r}"]
        if description:
            kwargs.append(f"help={description!r}")

        self._emit("")
        self._emit("")
        if command is None:
            self._emit(f"@click.group({', '.join(kwargs)})")
        elif command.is_leaf:
            self._emit(f"@{node.parent}.command({', '.join(kwargs)})")
            metavar = arg_usage(command.args)
            self._emit(f"@click.argument('_positionals', nargs=-1, metavar={metavar!r})")
        else:
            self._emit(f"@{node.parent}.group({', '.join(kwargs)})")
        for flag in node_flags(self.spec, command):
            self._emit(self._option(flag))

        if command is None or not command.is_leaf:
            self._emit(f"def {node.function}() -> None:")
            self._emit("    pass")
            return

        required, total = arity(command)
        self._emit(f"def {node.function}(_positionals: tuple[str, ...]) -> None:")
        self._emit(f"    check_arity(_positionals, {required}, {total})")
        needed = required_flags(self.spec, command)
        if needed:
            self._emit(f"    require_flags(flags, {needed!r})")
        self._emit(f"    run_action({node.action_function}(list(_positionals)))")

    def _emit_action(self, node: _Node) -> None:
        command = node.command
        assert command is not None and command.action is not None
        action: Action = command.action
        where = " ".join(node.path)
        backend = SourceBackend(required_args=arity(command)[0])
        scope = Scope(flags=dict(self._flag_idents), args=arg_positions(command))
        locals_ = NameAllocator({"args", "client", "flags"})

        self._emit("")
        self._emit("")
        self._emit(f"async def {node.action_function}(args: list[str]) -> None:")
        body: list[str] = []
        if action.steps:
            body.append(
                f"async with make_client(timeout={self.request.timeout!r}, "
                f"verify={self.request.verify_ssl!r}) as client:"
            )
            for step in action.steps:
                at = f'command "{where}", step "{step.name}"'
                url = resolve(step.url, scope, backend, f"{at}, field url")
                headers = (
                    resolve(step.headers, scope, backend, f"{at}, field headers")
                    if step.headers is not None
                    else "None"
                )
                payload = (
                    resolve(step.body, scope, backend, f"{at}, field body")
                    if step.body is not None
                    else "None"
                )
                variable = locals_.allocate(f"step_{to_identifier(step.name)}")
                body.append(
                    f"    {variable} = await http_step({step.name!r}, client, "
                    f"{step.method.value!r}, {url}, {headers}, {payload})"
                )
                scope.bind_step(step.name, variable)

        if action.output is not None:
            data_expr = output_data_expression(action)
            data = (
                resolve(data_expr, scope, backend, f'command "{where}", output data')
                if data_expr is not None
                else "None"
            )
            body.append(f"emit_output({self._render_call(action, data)})")

        if not body:
            body.append("pass")
        for line in body:
            self._emit(f"    {line}")

    @staticmethod
    def _render_call(action: Action, data: str) -> str:
        output = action.output
        assert output is not None
        if output.format == RenderFormat.TABLE:
            return f"render_table({data}, {output.columns!r})"
        if output.format == RenderFormat.TEXT:
            return f"render_text({data})"
        return f"render_json({data})"


def format_source(raw: str) -> tuple[str, Optional[FormatError]]:
    """Format *raw* with black; on failure return it unchanged with the error."""
    try:
        return black.format_str(raw, mode=black.Mode()), None
    except ValueError as exc:
        # black.InvalidInput is a ValueError subclass.
        return raw, FormatError(f"source formatting failed: {exc}", raw)


def generate_source(
    spec: Specification,
    request: Optional[RequestConfig] = None,
    format: bool = True,
) -> GeneratedSource:
    """Generate a standalone program for *spec*.

    Args:
        spec: The validated specification.
        request: HTTP timeout and TLS verification baked into the program.
        format: Run the result through black.

    Returns:
        A :class:`GeneratedSource`. Its ``format_error`` is set, and
        ``source`` is the raw text, when formatting failed.

    Raises:
        ReferenceError_: When an expression references an unknown flag,
            argument, or step. No partial source is produced.
    """
    generator = SourceGenerator(spec, request)
    raw = generator.generate()
    if not format:
        return GeneratedSource(source=raw, features=generator.features)
    source, error = format_source(raw)
    return GeneratedSource(source=source, features=generator.features, format_error=error)
