"""Tests for actioncli.engine.policy."""

from __future__ import annotations

from typing import Any, Callable

from actioncli.engine.policy import (
    arity,
    flag_help,
    iter_commands,
    node_flags,
    output_data_expression,
    required_flags,
    usage,
)
from actioncli.models import (
    Action,
    Arg,
    Command,
    Flag,
    LiteralExpr,
    Namespace,
    ReferenceExpr,
    Specification,
)


def _command(*args: tuple[str, bool]) -> Command:
    return Command(name="get", args=[Arg(name=n, required=r) for n, r in args])


class TestUsageAndArity:
    def test_required_then_optional(self) -> None:
        command = _command(("path", True), ("limit", False))
        assert usage(command) == "get <path> [limit]"
        assert arity(command) == (1, 2)

    def test_no_args(self) -> None:
        assert usage(_command()) == "get"
        assert arity(_command()) == (0, 0)

    def test_all_required(self) -> None:
        assert arity(_command(("a", True), ("b", True))) == (2, 2)


class TestFlags:
    def test_help_hints(self) -> None:
        flag = Flag(name="token", description="Vault token", env="VAULT_TOKEN", required=True)
        assert flag_help(flag) == "Vault token [env: VAULT_TOKEN] [required]"

    def test_help_empty(self) -> None:
        assert flag_help(Flag(name="x")) == ""

    def test_node_flags_global_then_local(self, vault_spec: Specification) -> None:
        put = vault_spec.commands[0].commands[2]
        assert [f.name for f in node_flags(vault_spec, put)] == ["address", "token", "cas"]
        assert [f.name for f in node_flags(vault_spec, None)] == ["address", "token"]

    def test_required_flags(self, make_spec: Callable[..., Specification]) -> None:
        spec = make_spec(
            flags=[{"name": "api-key", "required": True}, {"name": "region"}],
            commands=[{"name": "go", "flags": [{"name": "dry-run", "required": True}],
                       "action": {"steps": []}}],
        )
        assert required_flags(spec, spec.commands[0]) == {
            "api_key": "--api-key",
            "dry_run": "--dry-run",
        }


class TestOutputDataExpression:
    def test_declared_data_wins(self) -> None:
        action = Action.model_validate({"steps": [], "output": {"data": "hi"}})
        assert output_data_expression(action) == LiteralExpr(value="hi")

    def test_defaults_to_last_step(self) -> None:
        action = Action.model_validate(
            {"steps": [{"name": "a", "url": "u"}, {"name": "b", "url": "u"}], "output": {}}
        )
        assert output_data_expression(action) == ReferenceExpr(namespace=Namespace.STEP, name="b")

    def test_nothing_to_render(self) -> None:
        action = Action.model_validate({"output": {"format": "text"}})
        assert output_data_expression(action) is None


def test_iter_commands_depth_first(vault_spec: Specification) -> None:
    paths: list[Any] = [path for path, _ in iter_commands(vault_spec.commands)]
    assert paths == [
        ("kv",),
        ("kv", "get"),
        ("kv", "list"),
        ("kv", "put"),
        ("mounts",),
        ("status",),
    ]
