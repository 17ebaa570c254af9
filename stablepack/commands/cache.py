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

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from stablepack.context import GlobalContext
from stablepack.core.exceptions import handle_stablepack_exception

console = Console()

app = typer.Typer(help="Inspect or clear the incremental cache.", no_args_is_help=True)


def _format_size(size: int) -> str:
    for unit in ("B", "KB", "MB"):
        if size < 1024:
            return f"{size} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


@app.command(name="info")
@handle_stablepack_exception
def info(ctx: typer.Context) -> None:
    """Show where the cache lives and how much it holds."""
    global_context: GlobalContext = ctx.obj
    cache = global_context.open_cache()

    table = Table(title="Incremental Cache", show_header=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Location", str(global_context.cache_dir))
    table.add_row("Entries", str(len(cache)))
    table.add_row("Size", _format_size(cache.disk_usage()))
    limit = global_context.config.max_cache_entries
    table.add_row("Limit", str(limit) if limit is not None else "[dim]none[/dim]")

    console.print(table)


@app.command(name="clear")
@handle_stablepack_exception
def clear(ctx: typer.Context) -> None:
    """Remove every cached chunk."""
    global_context: GlobalContext = ctx.obj
    cache = global_context.open_cache()

    removed = cache.clear()
    logger.info(f"[green]Removed {removed} cache entries from {global_context.cache_dir}[/green]")
