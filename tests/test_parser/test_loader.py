"""Tests for actioncli.parser.loader and specification parsing."""

from __future__ import annotations

import io
import json
import textwrap
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from actioncli.exceptions import SpecParseError
from actioncli.parser import load_specification, parse_specification
from actioncli.parser.loader import _parse_content, load_document

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


# ---------------------------------------------------------------------------
# load_document dispatch
# ---------------------------------------------------------------------------


class TestLoadDocument:
    """load_document routes to the correct loader."""

    def test_loads_yaml_fixture(self) -> None:
        result = load_document(str(FIXTURES_DIR / "vault.yaml"))
        assert result["name"] == "vault"
        assert [c["name"] for c in result["commands"]] == ["kv", "mounts", "status"]

    def test_loads_json_file(self, tmp_path: Path) -> None:
        path = tmp_path / "tool.json"
        path.write_text(json.dumps({"name": "tool"}), encoding="utf-8")
        assert load_document(str(path)) == {"name": "tool"}

    def test_loads_from_stdin(self) -> None:
        with patch("actioncli.parser.loader.sys") as mock_sys:
            mock_sys.stdin = io.StringIO("name: piped\n")
            result = load_document("-")
        assert result == {"name": "piped"}

    def test_empty_stdin(self) -> None:
        with patch("actioncli.parser.loader.sys") as mock_sys:
            mock_sys.stdin = io.StringIO("   \n")
            with pytest.raises(SpecParseError, match="No input"):
                load_document("-")

    def test_loads_from_url(self) -> None:
        response = httpx.Response(
            status_code=200,
            text="name: remote\n",
            headers={"content-type": "application/yaml"},
            request=httpx.Request("GET", "https://example.com/cli.yaml"),
        )
        with patch("actioncli.parser.loader.httpx.get", return_value=response) as mock_get:
            result = load_document("https://example.com/cli.yaml")
        mock_get.assert_called_once()
        assert result == {"name": "remote"}

    def test_url_http_error(self) -> None:
        response = httpx.Response(
            status_code=404,
            request=httpx.Request("GET", "https://example.com/missing.yaml"),
        )
        with patch("actioncli.parser.loader.httpx.get", return_value=response):
            with pytest.raises(SpecParseError, match="HTTP 404"):
                load_document("https://example.com/missing.yaml")

    def test_url_connection_error(self) -> None:
        with patch(
            "actioncli.parser.loader.httpx.get",
            side_effect=httpx.ConnectError("refused"),
        ):
            with pytest.raises(SpecParseError, match="Failed to fetch"):
                load_document("https://example.com/cli.yaml")

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SpecParseError, match="not found"):
            load_document(str(tmp_path / "nope.yaml"))

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        with pytest.raises(SpecParseError, match="empty"):
            load_document(str(path))


class TestParseContent:
    def test_json_first(self) -> None:
        assert _parse_content('{"name": "x"}') == {"name": "x"}

    def test_yaml_fallback(self) -> None:
        assert _parse_content("name: x\n") == {"name": "x"}

    def test_invalid_json_with_json_hint(self) -> None:
        with pytest.raises(SpecParseError, match="Invalid JSON"):
            _parse_content("{name: x", hint="json")

    def test_top_level_must_be_mapping(self) -> None:
        with pytest.raises(SpecParseError, match="must be a JSON/YAML object"):
            _parse_content("- a\n- b\n")

    def test_garbage(self) -> None:
        with pytest.raises(SpecParseError, match="Failed to parse"):
            _parse_content("key: [unclosed\n  - : :")


# ---------------------------------------------------------------------------
# parse_specification
# ---------------------------------------------------------------------------


class TestParseSpecification:
    def test_fixture_loads(self) -> None:
        spec = load_specification(str(FIXTURES_DIR / "vault.yaml"))
        assert spec.name == "vault"
        assert spec.version == "1.2.0"
        get = spec.commands[0].commands[0]
        assert get.is_leaf
        assert get.action.steps[0].name == "read"

    def test_cli_wrapper_key(self) -> None:
        spec = parse_specification({"cli": {"name": "wrapped"}, "other": 1})
        assert spec.name == "wrapped"

    def test_errors_list_locations(self) -> None:
        doc = textwrap.dedent("""\
            name: tool
            commands:
              - name: get
                action:
                  steps:
                    - name: s
                      http: {method: GET}
        """)
        with pytest.raises(SpecParseError) as exc_info:
            load_specification_from_text(doc)
        message = str(exc_info.value)
        assert message.startswith("Invalid CLI specification:")
        assert "commands.0.action.steps.0.url" in message

    def test_bad_template_is_a_parse_error(self) -> None:
        doc = {
            "name": "tool",
            "commands": [
                {"name": "get", "action": {"steps": [{"name": "s", "url": "${flag.x"}]}}
            ],
        }
        with pytest.raises(SpecParseError, match="unterminated"):
            parse_specification(doc)


def load_specification_from_text(text: str):  # noqa: ANN201
    return parse_specification(_parse_content(text))
