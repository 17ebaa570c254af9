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

from pathlib import Path

import typer
from dotenv import load_dotenv
from loguru import logger
from platformdirs import user_config_dir
from rich.traceback import install

from stablepack.commands import build, cache, config, manifest
from stablepack.context import GlobalConfig, GlobalContext
from stablepack.core.config.config_loader import ConfigLoader
from stablepack.core.exceptions import StablepackError, handle_stablepack_exception
from stablepack.core.logging.logging import setup_logger
from stablepack.core.validation import validate_workers
from stablepack.runtimeutil import (
    ensure_utf8_output,
    get_log_dir_callback,
    setup_signal_handlers,
    version_callback,
)

CONFIG_FILENAME = "stablepackconfig.toml"
ENV_PREFIX = "stablepack_"

# create app
app = typer.Typer(
    help="stablepack: incremental bundler with stable, content-derived chunk names",
    pretty_exceptions_show_locals=False,
    pretty_exceptions_enable=False,
    add_completion=False,
)

# attach commands
app.command(name="build")(build.main)
app.command(name="manifest")(manifest.main)
app.add_typer(cache.app, name="cache")
app.command(name="config")(config.main)

# commands that run without a global context
config_command = "config"


def setup_config_args(**kwargs):
    config_args = {}

    for key, item in kwargs.items():
        if item is not None:
            config_args[key] = item

    return config_args


@app.callback(invoke_without_command=True)
@handle_stablepack_exception
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    log_path: bool = typer.Option(
        False,
        "--log-dir",
        "-LD",
        callback=get_log_dir_callback,
        is_eager=True,
        help="Show log path (where logs for stablepack live) and exit",
    ),
    custom_config: str | None = typer.Option(
        None,
        "--custom-config",
        help="Path to a custom config file",
    ),
    cache_dir: str | None = typer.Option(
        None,
        "--cache-dir",
        help="Directory of the incremental cache.",
    ),
    workers: int | None = typer.Option(
        None,
        "--workers",
        "-j",
        help="Number of chunks computed in parallel.",
    ),
    verbose: bool | None = typer.Option(
        None,
        "--verbose",
        "-v",
        help="Enable verbose logging.",
    ),
    silent: bool | None = typer.Option(
        None,
        "--silent",
        "-s",
        help="Do not output any text to the console, except for errors",
    ),
) -> None:
    """
    Global setup callback. Initialize shared objects here.
    """
    # skip --help in subcommands
    if any(arg in ctx.help_option_names for arg in ctx.args):
        return

    if ctx.invoked_subcommand is None:
        print(ctx.get_help())
        raise typer.Exit()

    # initial setup of logger, will be updated later if needed
    setup_logger(ctx.invoked_subcommand, debug=verbose or False, silent=silent or False)

    if ctx.invoked_subcommand == config_command:
        return

    config_args = setup_config_args(
        cache_dir=cache_dir,
        workers=validate_workers(workers),
        verbose=verbose,
        silent=silent,
    )

    local_config_path = Path(CONFIG_FILENAME)
    global_config_path = Path(user_config_dir("stablepack")) / CONFIG_FILENAME
    custom_config_path = Path(custom_config) if custom_config else None

    config = ConfigLoader.get_full_config(
        GlobalConfig,
        config_args,
        local_config_path,
        ENV_PREFIX,
        global_config_path,
        custom_config_path,
    )

    setup_logger(ctx.invoked_subcommand, debug=config.verbose, silent=config.silent)

    ctx.obj = GlobalContext.from_global_config(config)


def run_app():
    """Run the application with global exception handling."""
    try:
        # force stdout to be utf8 as it can be weird with typers console.print sometimes
        ensure_utf8_output()
        # Set up signal handlers for graceful shutdown
        setup_signal_handlers()
        # Disable showing locals in tracebacks (way too much text)
        install(show_locals=False)
        # environment constants may come from a .env file
        load_dotenv()
        # launch cli
        app(prog_name="stablepack")

    except StablepackError as e:
        logger.error(e)
        raise SystemExit(1)

    except KeyboardInterrupt:
        logger.info("\n[yellow]Operation cancelled by user[/yellow]")
        raise typer.Exit(130)


if __name__ == "__main__":
    run_app()
