"""End-to-end tests for the ``actioncli`` Typer application."""

from __future__ import annotations

import json
import re
import textwrap
from pathlib import Path
from typing import Any
from unittest.mock import patch

import httpx
import pytest
from typer.testing import CliRunner

from actioncli import __version__
from actioncli.app import app
from actioncli.config import load_global_config
from actioncli.exceptions import BuildError

runner = CliRunner()

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"
VAULT = str(FIXTURES_DIR / "vault.yaml")

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def _strip_ansi(text: str) -> str:
    return _ANSI_RE.sub("", text)


def _vault(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/v1/secret/data/app":
        return httpx.Response(200, json={"data": {"data": {"user": "admin"}}})
    return httpx.Response(404, text="not found")


@pytest.fixture
def mock_vault(monkeypatch: pytest.MonkeyPatch) -> list[httpx.Request]:
    """Route the interpreter's step client to a mock Vault; returns served requests."""
    served: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        served.append(request)
        return _vault(request)

    def make_client(
        timeout: float = 30.0, verify: bool = True, transport: Any = None
    ) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler), timeout=timeout)

    monkeypatch.setattr("actioncli.interpreter.command_tree.make_client", make_client)
    return served


def _write_spec(directory: Path, text: str) -> str:
    path = directory / "cli.yaml"
    path.write_text(textwrap.dedent(text), encoding="utf-8")
    return str(path)


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


def test_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.output.strip() == f"actioncli {__version__}"


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


class TestValidate:
    def test_valid(self, isolated_config: Path) -> None:
        result = runner.invoke(app, ["--no-color", "validate", "-c", VAULT])
        assert result.exit_code == 0, result.output
        assert "Specification 'vault' is valid (6 commands, 3 flags)." in result.output

    def test_unknown_reference(self, isolated_config: Path) -> None:
        path = _write_spec(
            isolated_config,
            """\
            name: tool
            commands:
              - name: get
                action:
                  steps:
                    - name: s
                      url: "${flag.host}/x"
            """,
        )
        result = runner.invoke(app, ["--no-color", "validate", "-c", path])
        assert result.exit_code == 3
        assert 'unknown flag "host"' in result.output

    def test_invalid_document(self, isolated_config: Path) -> None:
        path = _write_spec(isolated_config, "name: 9lives\n")
        result = runner.invoke(app, ["--no-color", "validate", "-c", path])
        assert result.exit_code == 7
        assert "Invalid CLI specification" in result.output

    def test_no_specification(self, isolated_config: Path) -> None:
        result = runner.invoke(app, ["--no-color", "validate"])
        assert result.exit_code == 2
        assert "No specification given" in result.output

    def test_lint_warnings(self, isolated_config: Path) -> None:
        path = _write_spec(
            isolated_config,
            """\
            name: tool
            commands:
              - name: get
                args:
                  - {name: a}
                  - {name: b, required: true}
                action: {output: {data: x}}
              - name: lonely
            """,
        )
        result = runner.invoke(app, ["--no-color", "validate", "-c", path])
        assert result.exit_code == 0
        assert 'required argument "b" follows an optional one' in result.output
        assert 'command "lonely" has neither an action nor sub-commands' in result.output

    def test_spec_from_environment(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ACTIONCLI_SPEC", VAULT)
        assert runner.invoke(app, ["validate"]).exit_code == 0

    def test_spec_from_project_file(self, isolated_config: Path) -> None:
        (isolated_config / "actioncli.json").write_text(json.dumps({"spec": VAULT}))
        assert runner.invoke(app, ["validate"]).exit_code == 0


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


class TestRun:
    def test_runs_a_command(self, isolated_config: Path, mock_vault: list[httpx.Request]) -> None:
        result = runner.invoke(app, ["run", "-c", VAULT, "--", "kv", "get", "app"])
        assert result.exit_code == 0, result.output
        assert result.stdout == '{\n  "user": "admin"\n}\n'
        assert str(mock_vault[0].url) == "http://vault.test/v1/secret/data/app"

    def test_flags_after_separator(
        self, isolated_config: Path, mock_vault: list[httpx.Request]
    ) -> None:
        result = runner.invoke(
            app, ["run", "-c", VAULT, "--", "--token", "s.root", "kv", "get", "app"]
        )
        assert result.exit_code == 0, result.output
        assert mock_vault[0].headers["x-vault-token"] == "s.root"

    def test_step_failure(self, isolated_config: Path, mock_vault: list[httpx.Request]) -> None:
        result = runner.invoke(app, ["--no-color", "run", "-c", VAULT, "--", "kv", "get", "nope"])
        assert result.exit_code == 4
        assert 'step "read" failed: HTTP 404: not found' in result.output

    def test_usage_error(self, isolated_config: Path, mock_vault: list[httpx.Request]) -> None:
        result = runner.invoke(app, ["run", "-c", VAULT, "--", "kv", "get"])
        assert result.exit_code == 2
        assert "accepts 1 arg(s), received 0" in _strip_ansi(result.output)
        assert mock_vault == []

    def test_missing_required_flag(
        self, isolated_config: Path, mock_vault: list[httpx.Request]
    ) -> None:
        path = _write_spec(
            isolated_config,
            """\
            name: tool
            flags:
              - {name: token, required: true}
            commands:
              - name: ping
                action:
                  steps:
                    - {name: ping, url: "http://vault.test/ping"}
            """,
        )
        result = runner.invoke(app, ["run", "-c", path, "--", "ping"])
        assert result.exit_code == 2
        assert 'required flag(s) "--token" not set' in _strip_ansi(result.output)
        assert "Unexpected error" not in result.output
        assert mock_vault == []

    def test_unknown_option(self, isolated_config: Path, mock_vault: list[httpx.Request]) -> None:
        result = runner.invoke(app, ["run", "-c", VAULT, "--", "kv", "get", "app", "--bogus"])
        assert result.exit_code == 2
        assert "--bogus" in _strip_ansi(result.output)
        assert "Unexpected error" not in result.output
        assert mock_vault == []

    def test_verbose_traces_steps(
        self, isolated_config: Path, mock_vault: list[httpx.Request]
    ) -> None:
        result = runner.invoke(
            app, ["--no-color", "--verbose", "run", "-c", VAULT, "--", "kv", "get", "app"]
        )
        assert result.exit_code == 0
        assert "[debug] step read: GET http://vault.test/v1/secret/data/app" in result.output
        assert "[debug] step read: HTTP 200" in result.output

    def test_output_file(self, isolated_config: Path, mock_vault: list[httpx.Request]) -> None:
        target = isolated_config / "out.json"
        result = runner.invoke(
            app, ["-o", str(target), "run", "-c", VAULT, "--", "kv", "get", "app"]
        )
        assert result.exit_code == 0
        assert json.loads(target.read_text()) == {"user": "admin"}

    def test_bad_timeout_env(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ACTIONCLI_TIMEOUT", "soon")
        result = runner.invoke(app, ["--no-color", "run", "-c", VAULT, "--", "mounts"])
        assert result.exit_code == 1
        assert "ACTIONCLI_TIMEOUT must be a number" in result.output


# ---------------------------------------------------------------------------
# inspect
# ---------------------------------------------------------------------------


class TestInspect:
    def test_commands_plain(self, isolated_config: Path) -> None:
        result = runner.invoke(app, ["--plain", "inspect", "commands", "-c", VAULT])
        assert result.exit_code == 0
        lines = result.stdout.splitlines()
        assert lines[0] == "Command\tUsage\tKind\tSteps\tOutput\tDescription"
        assert "kv\tkv\tgroup\t\t\tKey/value secrets" in lines
        assert "kv list\tkv list <prefix> [limit]\tleaf\t1\ttext\tList secret keys" in lines

    def test_flags_json(self, isolated_config: Path) -> None:
        result = runner.invoke(app, ["--json", "inspect", "flags", "-c", VAULT])
        assert result.exit_code == 0
        records = json.loads(result.stdout)
        assert records[0]["Flag"] == "--address"
        assert records[0]["Short"] == "-a"
        assert records[0]["Env"] == "VAULT_ADDR"
        assert records[2] == {
            "Flag": "--cas",
            "Short": "",
            "Scope": "kv put",
            "Default": "0",
            "Env": "",
            "Required": "",
        }

    def test_action(self, isolated_config: Path) -> None:
        result = runner.invoke(
            app, ["--plain", "--no-color", "inspect", "action", "kv", "put", "-c", VAULT]
        )
        assert result.exit_code == 0
        assert "write\tPOST\t${flag.address}/v1/secret/data/${arg.path}" in result.output
        assert "Output: text, data version ${step.write.body.data.version}" in result.output

    def test_action_of_group(self, isolated_config: Path) -> None:
        result = runner.invoke(app, ["--no-color", "inspect", "action", "kv", "-c", VAULT])
        assert result.exit_code == 2
        assert "is a group" in result.output


# ---------------------------------------------------------------------------
# build
# ---------------------------------------------------------------------------


class TestBuild:
    def test_source_to_stdout(self, isolated_config: Path) -> None:
        result = runner.invoke(app, ["build", "source", "-c", VAULT])
        assert result.exit_code == 0
        assert "def cli() -> None:" in result.stdout
        compile(result.stdout, "<vault>", "exec")

    def test_source_to_file(self, isolated_config: Path) -> None:
        target = isolated_config / "vault.py"
        result = runner.invoke(app, ["--no-color", "build", "source", "-c", VAULT, "-f", str(target)])
        assert result.exit_code == 0
        assert "Wrote vault program" in result.output
        assert "Generated by actioncli" in target.read_text(encoding="utf-8")

    def test_generate_package(self, isolated_config: Path) -> None:
        result = runner.invoke(
            app, ["build", "generate", "-c", VAULT, "-n", "vault-cli", "-d", str(isolated_config)]
        )
        assert result.exit_code == 0, result.output
        pkg = isolated_config / "vault-cli"
        assert (pkg / "pyproject.toml").is_file()
        assert (pkg / "src" / "vault_cli" / "cli.py").is_file()

    def test_compile_without_pyinstaller(self, isolated_config: Path) -> None:
        with patch("actioncli.generator.toolchain.pyinstaller_available", return_value=False):
            result = runner.invoke(app, ["--no-color", "build", "compile", "-c", VAULT])
        assert result.exit_code == 6
        assert "PyInstaller is not installed" in result.output

    def test_compile_failure_reports_toolchain_output(self, isolated_config: Path) -> None:
        failure = BuildError("PyInstaller exited with status 1", "collecting...\nERROR: boom\n")
        with patch("actioncli.generator.toolchain.pyinstaller_available", return_value=True), patch(
            "actioncli.generator.toolchain.compile_binary", side_effect=failure
        ):
            result = runner.invoke(app, ["--no-color", "build", "compile", "-c", VAULT])
        assert result.exit_code == 6
        assert "PyInstaller exited with status 1" in result.output
        assert "ERROR: boom" in result.output

    def test_compile_success(self, isolated_config: Path) -> None:
        binary = isolated_config / "vault"
        binary.write_bytes(b"\0" * 1024)
        with patch("actioncli.generator.toolchain.pyinstaller_available", return_value=True), patch(
            "actioncli.generator.toolchain.compile_binary", return_value=binary
        ) as compile_mock:
            result = runner.invoke(app, ["--no-color", "build", "compile", "-c", VAULT, "--onedir"])
        assert result.exit_code == 0, result.output
        assert f"Built: {binary}" in result.output
        assert compile_mock.call_args.kwargs["onedir"] is True


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


class TestConfigCommands:
    def test_show_json(self, isolated_config: Path) -> None:
        result = runner.invoke(app, ["--json", "--quiet", "config", "show"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["request"] == {"timeout": 30.0, "verify_ssl": True}

    def test_set_number_and_bool(self, isolated_config: Path) -> None:
        assert runner.invoke(app, ["config", "set", "request.timeout", "10"]).exit_code == 0
        assert runner.invoke(app, ["config", "set", "build.format_source", "false"]).exit_code == 0
        config = load_global_config()
        assert config.request.timeout == 10.0
        assert config.build.format_source is False

    def test_set_unknown_key(self, isolated_config: Path) -> None:
        result = runner.invoke(app, ["--no-color", "config", "set", "request.retries", "3"])
        assert result.exit_code == 2
        assert "Unknown config key" in result.output

    def test_set_bad_number(self, isolated_config: Path) -> None:
        result = runner.invoke(app, ["--no-color", "config", "set", "request.timeout", "fast"])
        assert result.exit_code == 2

    def test_reset(self, isolated_config: Path) -> None:
        runner.invoke(app, ["config", "set", "request.timeout", "5"])
        assert runner.invoke(app, ["config", "reset", "--force"]).exit_code == 0
        assert load_global_config().request.timeout == 30.0
