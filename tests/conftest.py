"""Shared test fixtures for actioncli.

Provides the sample Vault specification, a mock Vault HTTP API, helpers that
run a specification through either backend, isolated config environments,
and output-state management. These fixtures are automatically discovered by
pytest and available to all test modules without explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterator

import click
import httpx
import pytest
from click.testing import CliRunner, Result

from actioncli.generator import generate_source
from actioncli.interpreter import build_command_tree, to_click
from actioncli.models import Specification
from actioncli.output import reset_output
from actioncli.parser import load_specification, parse_specification


FIXTURES_DIR = Path(__file__).parent / "fixtures"
VAULT_SPEC = FIXTURES_DIR / "vault.yaml"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> Iterator[None]:
    """Reset the global OutputManager after every test.

    The OutputManager caches Rich consoles bound to sys.stdout/sys.stderr at
    creation time. CliRunner swaps those streams, so a manager created in one
    test must not leak into the next.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def _clear_vault_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Flag defaults read VAULT_* variables; keep the host environment out."""
    for var in ("VAULT_ADDR", "VAULT_TOKEN"):
        monkeypatch.delenv(var, raising=False)


# ---------------------------------------------------------------------------
# Specifications
# ---------------------------------------------------------------------------


@pytest.fixture
def vault_spec() -> Specification:
    return load_specification(str(VAULT_SPEC))


@pytest.fixture
def make_spec() -> Callable[..., Specification]:
    """Build a specification from keyword arguments (``name`` defaults to 'tool')."""

    def _make(**data: Any) -> Specification:
        data.setdefault("name", "tool")
        return parse_specification(data)

    return _make


# ---------------------------------------------------------------------------
# Mock Vault API
# ---------------------------------------------------------------------------

MOUNTS = [
    {"path": "secret/", "type": "kv", "description": "key/value store"},
    {"path": "sys/", "type": "system"},
]


def vault_handler(request: httpx.Request) -> httpx.Response:
    """Answer the requests the sample specification makes."""
    host, path = request.url.host, request.url.path
    if host == "leader.test" and path == "/v1/sys/leader":
        return httpx.Response(200, json={"leader_address": "http://leader.test:8200"})
    if host != "vault.test":
        return httpx.Response(502, text="unknown upstream")
    if path == "/v1/secret/data/app" and request.method == "GET":
        return httpx.Response(
            200,
            json={"data": {"data": {"user": "admin", "pass": "s3cret"}, "metadata": {"version": 3}}},
        )
    if path == "/v1/secret/data/app" and request.method == "POST":
        return httpx.Response(200, json={"data": {"version": 4}})
    if path == "/v1/secret/metadata/app" and request.url.params.get("list") == "true":
        return httpx.Response(200, json={"data": {"keys": ["db", "api"]}})
    if path == "/v1/sys/mounts-list":
        return httpx.Response(200, json={"mounts": MOUNTS})
    if path == "/v1/sys/health":
        return httpx.Response(200, json={"sealed": False, "leader_url": "http://leader.test"})
    return httpx.Response(404, json={"errors": []})


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response] = vault_handler) -> None:
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


# ---------------------------------------------------------------------------
# Running a specification through either backend
# ---------------------------------------------------------------------------


def interpreted_cli(spec: Specification, transport: httpx.AsyncBaseTransport) -> click.Command:
    return to_click(build_command_tree(spec, transport=transport))


def generated_cli(spec: Specification, transport: httpx.AsyncBaseTransport) -> click.Command:
    """Exec the generated program and route its HTTP client to *transport*."""
    generated = generate_source(spec)
    namespace: dict[str, Any] = {"__name__": "generated_cli"}
    exec(compile(generated.source, f"<{spec.name}>", "exec"), namespace)

    def _make_client(timeout: float = 30.0, verify: bool = True) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=transport, follow_redirects=True)

    namespace["make_client"] = _make_client
    return namespace["cli"]


BACKENDS = {"interpreted": interpreted_cli, "generated": generated_cli}


@pytest.fixture(params=sorted(BACKENDS))
def backend(request: pytest.FixtureRequest) -> Callable[..., Result]:
    """Run a specification through one backend; parametrised over both."""

    def _invoke(spec: Specification, args: list[str]) -> Result:
        return CliRunner().invoke(BACKENDS[request.param](spec, RecordingTransport()), args)

    return _invoke


@pytest.fixture
def run_backend() -> Callable[..., tuple[Result, RecordingTransport]]:
    """Run *args* through the named backend ('interpreted' or 'generated').

    Returns the click result and the transport that served the requests.
    """

    def _run(
        kind: str,
        spec: Specification,
        args: list[str],
        handler: Callable[[httpx.Request], httpx.Response] = vault_handler,
    ) -> tuple[Result, RecordingTransport]:
        transport = RecordingTransport(handler)
        result = CliRunner().invoke(BACKENDS[kind](spec, transport), args)
        return result, transport

    return _run


# ---------------------------------------------------------------------------
# Isolated configuration
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME under tmp_path, clears the
    ACTIONCLI_* environment variables and changes the working directory to
    tmp_path.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("actioncli.config._is_xdg_platform", lambda: True)
    for var in ("ACTIONCLI_SPEC", "ACTIONCLI_TIMEOUT", "NO_COLOR"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path

