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

from stablepack.context import GlobalContext
from stablepack.core.emitter.emitter import DirectoryEmitter
from stablepack.core.exceptions import handle_stablepack_exception


def _help_callback(ctx: typer.Context, param, value: bool):
    if not value or ctx.resilient_parsing:
        return
    typer.echo(ctx.get_help())
    raise typer.Exit()


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
    out: str | None = typer.Option(
        None,
        "--out",
        "-o",
        help="Output directory of the published build.",
    ),
    inline: bool = typer.Option(
        False,
        "--inline",
        help="Print a <script> tag assigning the manifest, for embedding into a page.",
    ),
) -> None:
    """Print the manifest of the last published production build.

    Examples:
        # Manifest as JSON
        stablepack manifest

        # Inline script for a host page template
        stablepack manifest --inline > manifest.html
    """
    global_context: GlobalContext = ctx.obj
    out_dir = Path(out) if out else global_context.out_dir

    manifest = DirectoryEmitter(out_dir).read_manifest()

    if inline:
        typer.echo(manifest.inline_script())
    else:
        typer.echo(manifest.to_json(), nl=False)
