"""Support routines shared by the interpreter and by generated programs.

Both backends execute actions through the functions in this module: the
interpreter calls them directly, and the source generator copies their
source text into every generated program (only the ones the program
needs, see :mod:`actioncli.generator.features`). Sharing one
implementation is what keeps the two backends' observable behaviour
identical.

Because the source is copied verbatim, everything here must stay
self-contained: module-level names may only come from ``asyncio``,
``json``, ``os``, ``click``, ``httpx`` or from this module itself.
"""

from __future__ import annotations

import asyncio
import json
import os
from typing import Any, Optional

import click
import httpx


class ActionFailure(Exception):
    """Base class for failures raised while executing an action."""


class StepFailure(ActionFailure):
    """An HTTP step failed; the message always names the step."""

    def __init__(self, step: str, cause: str) -> None:
        super().__init__(f'step "{step}" failed: {cause}')
        self.step = step
        self.cause = cause


class RenderFailure(ActionFailure):
    """The output data does not have the shape its format requires."""


def env_or(name: Optional[str], default: str) -> str:
    """Return environment variable *name* when set and non-empty, else *default*."""
    if name:
        value = os.environ.get(name, "")
        if value:
            return value
    return default


class FlagValues(dict):
    """Flag values keyed by identifier, shared by every command in a tree.

    Seeded with effective defaults; :meth:`store` is installed as the click
    callback of every flag option, so a value given on the command line at
    any level of the tree overwrites the shared entry.
    """

    def store(self, ctx: click.Context, param: click.Parameter, value: Any) -> Any:
        source = ctx.get_parameter_source(param.name) if param.name else None
        if param.name and source is not click.core.ParameterSource.DEFAULT:
            self[param.name] = value
        return value


def require_flags(values: dict, required: dict) -> None:
    """Fail unless every required flag has a non-empty effective value.

    *required* maps flag identifiers to their option spelling (``--token``).
    """
    missing = [option for ident, option in required.items() if not values.get(ident)]
    if missing:
        names = ", ".join(f'"{option}"' for option in missing)
        raise click.UsageError(f"required flag(s) {names} not set")


def check_arity(args: Any, required: int, total: int) -> None:
    """Validate the positional argument count.

    Exactly *required* when every declared argument is required, otherwise
    at least *required* with no upper bound.
    """
    received = len(args)
    if required == total:
        if received != required:
            raise click.UsageError(f"accepts {required} arg(s), received {received}")
    elif received < required:
        raise click.UsageError(
            f"requires at least {required} arg(s), only received {received}"
        )


def json_path(value: Any, *path: str) -> Any:
    """Descend into nested mappings; a non-mapping or missing key yields None."""
    for key in path:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def stringify(value: Any) -> str:
    """Default string representation used by templates, tables and text output."""
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    if isinstance(value, (bool, int, float)):
        return json.dumps(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def make_client(
    timeout: float = 30.0,
    verify: bool = True,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create the HTTP client an action's steps share."""
    return httpx.AsyncClient(
        timeout=timeout,
        verify=verify,
        transport=transport,
        follow_redirects=True,
    )


def request_body(body: Any) -> tuple:
    """Encode a resolved step body; returns ``(content, extra_headers)``.

    Strings are sent as-is (an empty string sends no body); any other value
    is JSON-encoded.
    """
    if body is None or body == "":
        return None, {}
    if isinstance(body, str):
        return body.encode("utf-8"), {}
    payload = json.dumps(body, ensure_ascii=False).encode("utf-8")
    return payload, {"Content-Type": "application/json"}


async def http_step(
    name: str,
    client: httpx.AsyncClient,
    method: str,
    url: Any,
    headers: Any = None,
    body: Any = None,
) -> dict:
    """Perform one step request and return ``{"status", "headers", "body"}``.

    ``body`` is the parsed JSON response when it parses, otherwise the raw
    text. Transport errors, non-2xx responses and cancellation all raise
    :class:`StepFailure` naming the step.
    """
    if headers is not None and not isinstance(headers, dict):
        raise StepFailure(name, f"headers must be an object, got {type(headers).__name__}")
    request_headers = {str(key): stringify(value) for key, value in (headers or {}).items()}
    content, extra = request_body(body)
    for key, value in extra.items():
        request_headers.setdefault(key, value)

    try:
        response = await client.request(
            method, stringify(url), headers=request_headers, content=content
        )
    except httpx.HTTPError as exc:
        raise StepFailure(name, str(exc) or type(exc).__name__) from exc
    except asyncio.CancelledError:
        raise StepFailure(name, "cancelled") from None

    if not 200 <= response.status_code < 300:
        raise StepFailure(name, f"HTTP {response.status_code}: {response.text.strip()}")

    text = response.text
    try:
        parsed = json.loads(text)
    except ValueError:
        parsed = text
    return {"status": response.status_code, "headers": dict(response.headers), "body": parsed}


def render_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def render_table(data: Any, columns: Optional[list] = None) -> str:
    """Render a list of records as tab-separated lines with a header row.

    Columns default to the keys of the first record, in insertion order.
    Records that are not objects are skipped; absent keys give empty cells.
    """
    if not isinstance(data, list):
        raise RenderFailure("table output requires an array")
    if not columns:
        if not data:
            return ""
        if not isinstance(data[0], dict):
            raise RenderFailure("table output requires an array of objects")
        columns = list(data[0])
    lines = ["\t".join(columns)]
    for record in data:
        if isinstance(record, dict):
            lines.append("\t".join(stringify(record.get(column)) for column in columns))
    return "\n".join(lines) + "\n"


def render_text(data: Any) -> str:
    return stringify(data) + "\n"


def emit_output(text: str) -> None:
    if text:
        click.echo(text, nl=False)


def run_action(action: Any) -> None:
    """Run an action coroutine to completion, reporting failures through click."""
    try:
        asyncio.run(action)
    except ActionFailure as exc:
        raise click.ClickException(str(exc)) from exc
