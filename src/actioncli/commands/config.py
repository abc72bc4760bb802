"""Config commands -- view and modify global configuration.

Provides the ``actioncli config`` sub-command group for reading, updating and
resetting the user's global configuration file
(:class:`~actioncli.models.GlobalConfig`): the default specification,
request timeout and TLS verification, and build defaults.
"""

from __future__ import annotations

import typer

from actioncli.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the current configuration.

    Example::

        actioncli config show --json
    """
    from actioncli.config import get_config_dir, load_global_config

    config = load_global_config()
    info(f"Config directory: {get_config_dir()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Config key (dot notation, e.g. 'request.timeout')."),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    The value is coerced to the existing field's type (bool, number, or
    string) and the result validated before saving.

    Example::

        actioncli config set default_spec ./vault.yaml
        actioncli config set request.timeout 10
        actioncli config set build.format_source false
    """
    from actioncli.config import load_global_config, save_global_config
    from actioncli.models import GlobalConfig

    data = load_global_config().model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=2)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target or isinstance(target[final_key], dict):
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    current = target[final_key]
    coerced: object = value
    if isinstance(current, bool):
        coerced = value.lower() in ("true", "1", "yes")
    elif isinstance(current, (int, float)):
        try:
            coerced = float(value)
        except ValueError:
            error(f"Expected a number for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    target[final_key] = coerced

    try:
        new_config = GlobalConfig.model_validate(data)
    except ValueError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_global_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Reset the configuration to defaults."""
    from actioncli.config import save_global_config
    from actioncli.models import GlobalConfig

    if not force and not typer.confirm("Reset configuration to defaults?"):
        info("Aborted.")
        raise typer.Exit(code=1)
    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
