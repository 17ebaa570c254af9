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
from loguru import logger
from rich.console import Console
from rich.table import Table

from stablepack.context import BuildContext, GlobalContext
from stablepack.core.data.build_result import BuildResult
from stablepack.core.exceptions import handle_stablepack_exception
from stablepack.core.logging.utils import time_block
from stablepack.core.validation import (
    validate_graph_path,
    validate_metadata,
    validate_mode,
)
from stablepack.pipelines.build_pipeline import BuildPipeline

console = Console()


def _help_callback(ctx: typer.Context, param, value: bool):
    if not value or ctx.resilient_parsing:
        return
    typer.echo(ctx.get_help())
    raise typer.Exit()


def _print_summary(result: BuildResult, silent: bool) -> None:
    if silent:
        return

    table = Table(title="Build Output", show_lines=False)
    table.add_column("Chunk", style="cyan")
    table.add_column("Kind", style="magenta")
    table.add_column("File", style="green")
    table.add_column("Modules", justify="right")
    table.add_column("Bytes", justify="right")
    table.add_column("Cache", style="dim")

    for artifact in result.artifacts:
        table.add_row(
            artifact.chunk.name,
            artifact.chunk.kind.value,
            artifact.file_name,
            str(len(artifact.chunk.modules)),
            str(len(artifact.content)),
            "hit" if artifact.cached else "miss",
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
    graph: str = typer.Argument(
        ..., help="Path to the module graph description (JSON) written by the resolver."
    ),
    mode: str | None = typer.Option(
        None,
        "--mode",
        "-m",
        help="Build mode (development or production). Overrides the configured mode.",
    ),
    out: str | None = typer.Option(
        None,
        "--out",
        "-o",
        help="Output directory for production builds.",
    ),
    no_cache: bool = typer.Option(
        False,
        "--no-cache",
        help="Compute every chunk from scratch and do not touch the cache.",
    ),
    meta: list[str] | None = typer.Option(
        None,
        "--meta",
        help="Free-form KEY=VALUE recorded in the manifest. Can be repeated.",
    ),
) -> None:
    """Bundle a module graph into chunks with stable, content-derived names.

    Examples:
        # Production build into ./dist
        stablepack build graph.json

        # Development build, kept in memory, without the cache
        stablepack build graph.json --mode development --no-cache

        # Record the release in the manifest
        stablepack build graph.json --meta release=1.4.0
    """
    graph_path = validate_graph_path(graph)
    mode = validate_mode(mode)
    metadata = validate_metadata(meta)

    global_context: GlobalContext = ctx.obj
    build_context = BuildContext.from_global_context(
        global_context,
        graph_path,
        mode=mode,
        out_dir=Path(out) if out else None,
        use_cache=False if no_cache else None,
        metadata=metadata,
    )

    logger.info(
        "Build command started",
        graph=str(graph_path),
        mode=build_context.settings.mode,
    )

    with time_block("Build Runner E2E"):
        result = BuildPipeline(build_context).run()

    _print_summary(result, global_context.silent)

    if result.orphans:
        logger.info(f"{len(result.orphans)} orphan module(s) were left out of the build")

    if build_context.settings.mode == "production":
        logger.info(f"[green]Published {len(result.artifacts)} chunks to {build_context.emitter.out_dir}[/green]")
    else:
        logger.info(f"[green]Built {len(result.artifacts)} chunks in memory[/green]")

    logger.info(
        "Cache: {hits} hit(s), {misses} miss(es)",
        hits=result.cache_hits,
        misses=result.cache_misses,
    )
