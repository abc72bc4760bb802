"""Read specification documents from a file, an HTTP(S) URL, or stdin.

Every source ends up in :func:`_parse_content`, which decodes JSON or YAML
into a plain mapping. The file suffix or the response content type only
decides which decoder is tried first; validation into models happens in
:func:`actioncli.parser.parse_specification`.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Optional

import httpx
import yaml

from actioncli.exceptions import SpecParseError

_SUFFIX_HINTS = {".json": "json", ".yaml": "yaml", ".yml": "yaml"}


def load_document(source: str) -> dict[str, Any]:
    """Load a raw document from *source*.

    Args:
        source: ``-`` for stdin, an ``http://``/``https://`` URL, or a path.

    Raises:
        SpecParseError: If the source cannot be read or decoded.
    """
    if source == "-":
        return _load_from_stdin()
    if source.startswith(("http://", "https://")):
        return _load_from_url(source)
    return _load_from_file(source)


def _load_from_stdin() -> dict[str, Any]:
    try:
        content = sys.stdin.read()
    except OSError as exc:
        raise SpecParseError(f"Failed to read from stdin: {exc}") from exc
    if not content.strip():
        raise SpecParseError("No input received from stdin")
    return _parse_content(content)


def _content_type_hint(content_type: str) -> str:
    if "json" in content_type:
        return "json"
    if "yaml" in content_type or "yml" in content_type:
        return "yaml"
    return ""


def _load_from_url(url: str) -> dict[str, Any]:
    try:
        response = httpx.get(url, timeout=30.0, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise SpecParseError(
            f"HTTP {exc.response.status_code} fetching specification from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise SpecParseError(f"Failed to fetch specification from {url}: {exc}") from exc
    hint = _content_type_hint(response.headers.get("content-type", ""))
    return _parse_content(response.text, hint=hint)


def _load_from_file(path: str) -> dict[str, Any]:
    file_path = Path(path)
    if not file_path.is_file():
        raise SpecParseError(f"Specification file not found: {path}")
    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SpecParseError(f"Cannot read specification file {path}: {exc}") from exc
    if not content.strip():
        raise SpecParseError(f"Specification file is empty: {path}")
    return _parse_content(content, hint=_SUFFIX_HINTS.get(file_path.suffix.lower(), ""))


def _require_mapping(result: Any) -> dict[str, Any]:
    if isinstance(result, dict):
        return result
    kind = "empty document" if result is None else type(result).__name__
    raise SpecParseError(f"Specification must be a JSON/YAML object (got {kind})")


def _parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Decode *content* as JSON, falling back to YAML.

    JSON is skipped when *hint* is ``"yaml"``. With a ``"json"`` hint a JSON
    syntax error is final.

    Raises:
        SpecParseError: If neither decoder accepts the text, or the top level
            is not a mapping.
    """
    json_error: Optional[json.JSONDecodeError] = None
    if hint != "yaml":
        try:
            return _require_mapping(json.loads(content))
        except json.JSONDecodeError as exc:
            if hint == "json":
                raise SpecParseError(f"Invalid JSON: {exc}") from exc
            json_error = exc

    try:
        return _require_mapping(yaml.safe_load(content))
    except yaml.YAMLError as exc:
        details = [f"  YAML error: {exc}"]
        if json_error is not None:
            details.insert(0, f"  JSON error: {json_error}")
        raise SpecParseError(
            "Failed to parse specification as JSON or YAML\n" + "\n".join(details)
        ) from exc
