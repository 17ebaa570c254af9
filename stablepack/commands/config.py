# -----------------------------------------------------------------------------
# /*
#  * Copyright (C) 2025 CodeStory
#  *
#  * This program is free software; you can redistribute it and/or modify
#  * it under the terms of the GNU General Public License as published by
#  * the Free Software Foundation; Version 2.
#  *
#  * This program is distributed in the hope that it will be useful,
#  * but WITHOUT ANY WARRANTY; without even the implied warranty of
#  * MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
#  * GNU General Public License for more details.
#  *
#  * You should have received a copy of the GNU General Public License
#  * along with this program; if not, you can contact us at support@codestory.build
#  */
# -----------------------------------------------------------------------------

import os
from pathlib import Path

import tomllib
import typer
from platformdirs import user_config_dir
from rich.console import Console
from rich.table import Table

from stablepack.context import GlobalConfig
from stablepack.core.exceptions import ValidationError, handle_stablepack_exception

console = Console()

CONFIG_FILENAME = "stablepackconfig.toml"
ENV_PREFIX = "stablepack_"
SCOPES = ("local", "global", "env")


def _get_config_schema() -> dict:
    """Get the schema of available config options from GlobalConfig."""
    schema = {}

    for field_name, field_info in GlobalConfig.model_fields.items():
        if field_info.default_factory is not None:
            default_value = field_info.default_factory()
        else:
            default_value = field_info.default

        description = field_info.description or "No description available"

        schema[field_name] = {"description": description, "default": default_value}

    return schema


def _truncate_text(text: str, max_length: int = 50) -> str:
    """Truncate text with ellipsis if it exceeds max_length."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def _check_key_exists(key: str) -> None:
    """Check if a config key exists. If not, show available options and exit."""
    schema = _get_config_schema()

    if key not in schema:
        console.print(f"[red]Error:[/red] Unknown configuration key '{key}'\n")
        console.print("[bold]Available configuration options:[/bold]\n")

        table = Table(show_header=True, header_style="bold cyan", show_lines=True)
        table.add_column("Key", style="cyan")
        table.add_column("Description", style="yellow")
        table.add_column("Default", style="green")

        for config_key, info in sorted(schema.items()):
            default_str = (
                str(info["default"]) if info["default"] is not None else "None"
            )
            description = _truncate_text(info["description"], 60)
            table.add_row(config_key, description, default_str)

        console.print(table)
        raise typer.Exit(1)


def _help_callback(ctx: typer.Context, param, value: bool):
    # Typer/Click help callback: show help and exit when --help is provided
    if not value or ctx.resilient_parsing:
        return
    typer.echo(ctx.get_help())
    raise typer.Exit()


def _read_toml(path: Path) -> dict | None:
    if not path.exists():
        return None
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        console.print(f"[yellow]Warning:[/yellow] Failed to parse {path}: {e}")
        return None


def _toml_value(value) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        return "[" + ", ".join(_toml_value(v) for v in value) + "]"
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _set_config(key: str, value: str, scope: str) -> None:
    """Set a configuration value in the specified scope."""
    _check_key_exists(key)

    if scope == "env":
        # For environment variables, just print instructions
        env_var = f"{ENV_PREFIX}{key}"
        console.print("[green]To set this as an environment variable:[/green]")
        console.print(f"  Windows (PowerShell): $env:{env_var}='{value}'")
        console.print(f"  Windows (CMD): set {env_var}={value}")
        console.print(f"  Linux/macOS: export {env_var}='{value}'")
        return

    if scope == "global":
        config_path = Path(user_config_dir("stablepack")) / CONFIG_FILENAME
        config_path.parent.mkdir(parents=True, exist_ok=True)
    else:
        config_path = Path(CONFIG_FILENAME)

    config_data = _read_toml(config_path) or {}
    config_data[key] = value

    # flat key-value pairs only
    with open(config_path, "w", encoding="utf-8") as f:
        for k, v in config_data.items():
            f.write(f"{k} = {_toml_value(v)}\n")

    console.print(f"[green]Set {key} = {value} ({scope})[/green]")
    console.print(f"Config file: {config_path.absolute()}")


def _get_config(key: str | None, scope: str | None) -> None:
    """Get configuration value(s) from the specified scope or all scopes."""
    sources = []

    if scope is None or scope == "local":
        local_path = Path(CONFIG_FILENAME)
        local_config = _read_toml(local_path)
        if local_config is not None:
            sources.append(("Local", local_path, local_config))

    if scope is None or scope == "env":
        env_config = {}
        for k, v in os.environ.items():
            if k.lower().startswith(ENV_PREFIX):
                env_config[k[len(ENV_PREFIX) :].lower()] = v
        if env_config:
            sources.append(("Environment", None, env_config))

    if scope is None or scope == "global":
        global_path = Path(user_config_dir("stablepack")) / CONFIG_FILENAME
        global_config = _read_toml(global_path)
        if global_config is not None:
            sources.append(("Global", global_path, global_config))

    if key:
        _check_key_exists(key)

    if not sources:
        scope_m = f"in scope:{scope if scope else 'all'}"
        if key:
            console.print(f"[yellow]No configuration found for key:{key} {scope_m}[/yellow]")
        else:
            console.print(f"[yellow]No configuration file found {scope_m}[/yellow]")
        return

    if key:
        table = Table(title=f"Configuration: {key}", show_lines=True)
        table.add_column("Source", style="cyan")
        table.add_column("Value", style="green")
        table.add_column("Location", style="dim")

        found = [(name, path, data[key]) for name, path, data in sources if key in data]
        for source_name, source_path, value in found:
            location = str(source_path) if source_path else "Environment Variables"
            table.add_row(source_name, _truncate_text(str(value), 50), location)

        if found:
            console.print(table)
            if len(sources) > 1:
                console.print(
                    f"\n[bold]Active value:[/bold] {found[0][2]} (from {found[0][0]})"
                )
        else:
            console.print(f"[yellow]Key '{key}' not found in any configuration[/yellow]")
        return

    schema = _get_config_schema()
    set_keys = set()
    for _, _, config_data in sources:
        set_keys.update(config_data.keys())

    table = Table(title="Configuration Options", show_lines=True)
    table.add_column("Key", style="cyan")
    table.add_column("Description", style="yellow")
    table.add_column("Value/Default", style="green")
    table.add_column("Source", style="magenta")

    for k in sorted(schema.keys()):
        description_short = _truncate_text(schema[k]["description"], 60)

        if k in set_keys:
            # the first source holding the key is the active one
            for source_name, _, config_data in sources:
                if k in config_data:
                    value_str = _truncate_text(str(config_data[k]), 40)
                    table.add_row(k, description_short, value_str, source_name)
                    break
        else:
            default_value = schema[k]["default"]
            default_str = (
                str(default_value) if default_value is not None else "[dim]No-Default[/dim]"
            )
            table.add_row(
                k, description_short, _truncate_text(default_str, 40), "[dim](not set)[/dim]"
            )

    console.print(table)


@handle_stablepack_exception
def main(
    ctx: typer.Context,
    help: bool = typer.Option(
        False,
        "--help",
        callback=_help_callback,
        is_eager=True,
        help="Show this message and exit.",
    ),
    key: str | None = typer.Argument(None, help="Configuration key to get or set."),
    value: str | None = typer.Argument(
        None, help="Value to set (omit to get current value)."
    ),
    scope: str | None = typer.Option(
        None,
        "--scope",
        help="Select which scope to use: local, global or env. Defaults to local when setting.",
    ),
) -> None:
    """
    Manage global and local stablepack configurations.

    Priority order: program arguments > custom config > local config > environment variables > global config

    Examples:

        # Get a configuration value

        stablepack config mode

        # Set a local configuration value

        stablepack config out_dir build

        # Set a global configuration value

        stablepack config workers 8 --scope global

        # Show all configuration

        stablepack config
    """
    if scope is not None and scope not in SCOPES:
        raise ValidationError(
            f"Invalid scope: {scope}", f"Scope must be one of {', '.join(SCOPES)}"
        )

    if value is not None:
        if key is None:
            raise ValidationError("Key is required when setting a value")
        _set_config(key, value, scope or "local")
    else:
        # without an explicit scope, show every scope
        _get_config(key, scope)
