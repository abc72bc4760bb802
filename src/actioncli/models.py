"""Canonical Pydantic models shared across all actioncli modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Expression models** -- the tiny expression language used inside actions:
    :class:`Namespace`, :class:`LiteralExpr`, :class:`ReferenceExpr`,
    :class:`TemplateExpr`, :class:`ObjectExpr`, :class:`ListExpr` and the
    :data:`Expression` union. All are frozen once parsed.

**Specification models** -- the declarative CLI description consumed by both
backends:
    :class:`Flag`, :class:`Arg`, :class:`HTTPMethod`, :class:`Step`,
    :class:`RenderFormat`, :class:`Output`, :class:`Action`,
    :class:`Command`, and :class:`Specification`.

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`RequestConfig`, :class:`BuildConfig`, and :class:`GlobalConfig`.

Expression-typed fields accept raw document values (strings with
``${...}`` interpolations, mappings, lists, scalars) and parse them with
:func:`~actioncli.parser.expressions.parse_expression`; already-built
expression objects pass through untouched.
"""

from __future__ import annotations

import enum
import re
from typing import Any, Iterator, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from actioncli.naming import to_identifier


# --- Expressions ---


class Namespace(str, enum.Enum):
    """The three namespaces an expression reference can read from."""

    FLAG = "flag"
    ARG = "arg"
    STEP = "step"


class LiteralExpr(BaseModel):
    """A constant value (string, number, boolean, or null)."""

    model_config = ConfigDict(frozen=True)

    value: Any = None


class ReferenceExpr(BaseModel):
    """A ``flag.<name>``, ``arg.<name>`` or ``step.<name>.<path>...`` reference.

    ``path`` is only meaningful for step references, where it descends into
    the step result (``step.list.body.data.keys`` has name ``list`` and path
    ``("body", "data", "keys")``).
    """

    model_config = ConfigDict(frozen=True)

    namespace: Namespace
    name: str
    path: tuple[str, ...] = ()

    @model_validator(mode="after")
    def _path_only_for_steps(self) -> "ReferenceExpr":
        if self.path and self.namespace != Namespace.STEP:
            raise ValueError(
                f"{self.namespace.value} references take no path: "
                f"{self.namespace.value}.{self.name}.{'.'.join(self.path)}"
            )
        return self

    def __str__(self) -> str:
        return "${" + ".".join([self.namespace.value, self.name, *self.path]) + "}"


class TemplateExpr(BaseModel):
    """Literal text and references concatenated into one string."""

    model_config = ConfigDict(frozen=True)

    parts: tuple[Union[str, ReferenceExpr], ...]


class ObjectExpr(BaseModel):
    """An ordered mapping whose values are expressions (headers, JSON bodies)."""

    model_config = ConfigDict(frozen=True)

    items: tuple[tuple[str, "Expression"], ...] = ()


class ListExpr(BaseModel):
    """A sequence of expressions."""

    model_config = ConfigDict(frozen=True)

    items: tuple["Expression", ...] = ()


Expression = Union[LiteralExpr, ReferenceExpr, TemplateExpr, ObjectExpr, ListExpr]

ObjectExpr.model_rebuild()
ListExpr.model_rebuild()

_EXPRESSION_TYPES = (LiteralExpr, ReferenceExpr, TemplateExpr, ObjectExpr, ListExpr)


def _coerce_expression(value: Any) -> Any:
    """Field validator body: parse raw document values into expressions."""
    if value is None or isinstance(value, _EXPRESSION_TYPES):
        return value
    from actioncli.parser.expressions import parse_expression

    return parse_expression(value)


def iter_references(expr: Optional[Expression]) -> Iterator[ReferenceExpr]:
    """Yield every :class:`ReferenceExpr` inside *expr*, depth first, in order."""
    if expr is None or isinstance(expr, LiteralExpr):
        return
    if isinstance(expr, ReferenceExpr):
        yield expr
    elif isinstance(expr, TemplateExpr):
        for part in expr.parts:
            if isinstance(part, ReferenceExpr):
                yield part
    elif isinstance(expr, ObjectExpr):
        for _, value in expr.items:
            yield from iter_references(value)
    elif isinstance(expr, ListExpr):
        for item in expr.items:
            yield from iter_references(item)


# --- Specification ---

_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_.-]*$")


def _check_name(value: str, what: str) -> str:
    if not _NAME_RE.match(value):
        raise ValueError(
            f"invalid {what} name {value!r}: must start with a letter and contain "
            "only letters, digits, '-', '_' or '.'"
        )
    return value


class Flag(BaseModel):
    """A named option (``--name`` / ``-s``) bound once per invocation.

    The effective default is the value of ``env`` when that variable is set
    and non-empty, otherwise ``default``. A value given on the command line
    always wins.
    """

    name: str
    short: Optional[str] = Field(default=None, description="Single-character alias")
    default: str = ""
    env: Optional[str] = Field(default=None, description="Environment variable fallback")
    description: str = ""
    required: bool = False

    @field_validator("name")
    @classmethod
    def _valid_name(cls, v: str) -> str:
        return _check_name(v, "flag")

    @field_validator("short")
    @classmethod
    def _single_char(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and (len(v) != 1 or not v.isalnum()):
            raise ValueError(f"short alias must be a single letter or digit, got {v!r}")
        return v

    @field_validator("default", mode="before")
    @classmethod
    def _stringify_default(cls, v: Any) -> Any:
        # Documents commonly write `default: 10` or `default: true`.
        if v is None:
            return ""
        if isinstance(v, bool):
            return "true" if v else "false"
        if isinstance(v, (int, float)):
            return str(v)
        return v

    @property
    def identifier(self) -> str:
        return to_identifier(self.name)


class Arg(BaseModel):
    """A positional argument; declaration order determines position."""

    name: str
    required: bool = False
    description: str = ""

    @field_validator("name")
    @classmethod
    def _valid_name(cls, v: str) -> str:
        return _check_name(v, "argument")


class HTTPMethod(str, enum.Enum):
    """HTTP methods a step may use."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class Step(BaseModel):
    """One HTTP request inside an :class:`Action`.

    Request fields may be given inline or nested under an ``http`` block::

        - name: read
          http:
            method: GET
            url: "${flag.address}/v1/secret/data/${arg.path}"
    """

    name: str
    method: HTTPMethod = HTTPMethod.GET
    url: Expression
    headers: Optional[Expression] = None
    body: Optional[Expression] = None

    @model_validator(mode="before")
    @classmethod
    def _lift_http_block(cls, data: Any) -> Any:
        if isinstance(data, dict) and "http" in data:
            data = dict(data)
            http = data.pop("http")
            if not isinstance(http, dict):
                raise ValueError("step 'http' block must be a mapping")
            for key, value in http.items():
                data.setdefault(key, value)
        return data

    @field_validator("name")
    @classmethod
    def _valid_name(cls, v: str) -> str:
        return _check_name(v, "step")

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    @field_validator("url", "headers", "body", mode="before")
    @classmethod
    def _parse_expression(cls, v: Any) -> Any:
        return _coerce_expression(v)


class RenderFormat(str, enum.Enum):
    """Output formats an action can render."""

    JSON = "json"
    TABLE = "table"
    TEXT = "text"


class Output(BaseModel):
    """How an action renders its result.

    When ``data`` is omitted the result of the last declared step is
    rendered. ``columns`` fixes the table columns and is only valid for the
    ``table`` format.
    """

    format: RenderFormat = RenderFormat.JSON
    data: Optional[Expression] = None
    columns: Optional[list[str]] = None

    @field_validator("format", mode="before")
    @classmethod
    def _lower_format(cls, v: Any) -> Any:
        return v.lower() if isinstance(v, str) else v

    @field_validator("data", mode="before")
    @classmethod
    def _parse_expression(cls, v: Any) -> Any:
        return _coerce_expression(v)

    @model_validator(mode="after")
    def _columns_only_for_tables(self) -> "Output":
        if self.columns is not None and self.format != RenderFormat.TABLE:
            raise ValueError(
                f"columns are only valid for table output, not {self.format.value!r}"
            )
        return self


class Action(BaseModel):
    """Ordered HTTP steps followed by an optional output."""

    steps: list[Step] = Field(default_factory=list)
    output: Optional[Output] = None

    @model_validator(mode="after")
    def _unique_step_names(self) -> "Action":
        seen: set[str] = set()
        for step in self.steps:
            if step.name in seen:
                raise ValueError(f"duplicate step name {step.name!r}")
            seen.add(step.name)
        return self


class Command(BaseModel):
    """A node of the command tree: a *leaf* (has an action) or a *group*."""

    name: str
    description: str = ""
    args: list[Arg] = Field(default_factory=list)
    flags: list[Flag] = Field(default_factory=list)
    action: Optional[Action] = None
    commands: list["Command"] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _valid_name(cls, v: str) -> str:
        return _check_name(v, "command")

    @model_validator(mode="after")
    def _check_shape(self) -> "Command":
        if self.action is not None and self.commands:
            raise ValueError(
                f"command {self.name!r} cannot have both an action and subcommands"
            )
        seen: set[str] = set()
        for arg in self.args:
            if arg.name in seen:
                raise ValueError(f"command {self.name!r}: duplicate argument {arg.name!r}")
            seen.add(arg.name)
        names = [c.name for c in self.commands]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f"command {self.name!r}: duplicate subcommands {dupes}")
        return self

    @property
    def is_leaf(self) -> bool:
        return self.action is not None


class Specification(BaseModel):
    """A complete declarative CLI: global flags and the command tree.

    Flag names share one flat namespace across the whole specification, so
    a command-local flag may not reuse the name of a global flag or of a
    flag declared on any other command.
    """

    name: str
    description: str = ""
    version: str = "0.1.0"
    flags: list[Flag] = Field(default_factory=list)
    commands: list[Command] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _valid_name(cls, v: str) -> str:
        return _check_name(v, "cli")

    @model_validator(mode="after")
    def _check_flag_namespace(self) -> "Specification":
        by_name: dict[str, str] = {}
        by_ident: dict[str, str] = {}
        by_short: dict[str, str] = {}
        for flag in self.all_flags():
            if flag.name == "help":
                raise ValueError("flag name 'help' is reserved")
            if flag.name in by_name:
                raise ValueError(f"duplicate flag name {flag.name!r}")
            by_name[flag.name] = flag.name
            if flag.short is not None:
                if flag.short in by_short:
                    raise ValueError(
                        f"flags {by_short[flag.short]!r} and {flag.name!r} share "
                        f"the short alias -{flag.short}"
                    )
                by_short[flag.short] = flag.name
            ident = flag.identifier
            if ident in by_ident:
                raise ValueError(
                    f"flags {by_ident[ident]!r} and {flag.name!r} normalise to the "
                    f"same identifier {ident!r}"
                )
            by_ident[ident] = flag.name
        names = [c.name for c in self.commands]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f"duplicate top-level commands {dupes}")
        return self

    def all_flags(self) -> list[Flag]:
        """Global flags followed by every command-local flag, tree order."""
        flags = list(self.flags)

        def _walk(commands: list[Command]) -> None:
            for command in commands:
                flags.extend(command.flags)
                _walk(command.commands)

        _walk(self.commands)
        return flags


Command.model_rebuild()


# --- Configuration ---


class RequestConfig(BaseModel):
    """HTTP settings applied to every step request."""

    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class BuildConfig(BaseModel):
    """Defaults for ``actioncli build``."""

    output_dir: str = Field(default="./dist", description="Where build artefacts go")
    format_source: bool = Field(default=True, description="Run generated source through black")


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/actioncli/config.json``.

    Loaded and saved by :func:`~actioncli.config.load_global_config` and
    :func:`~actioncli.config.save_global_config`. Fields here have the
    lowest precedence; see :func:`~actioncli.config.resolve_config`.
    """

    default_spec: Optional[str] = None
    request: RequestConfig = Field(default_factory=RequestConfig)
    build: BuildConfig = Field(default_factory=BuildConfig)
