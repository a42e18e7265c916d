from __future__ import annotations

import asyncio
from collections import Counter
from pathlib import Path
from typing import List

import typer
from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from . import manifest as manifest_module
from . import pipeline as pipeline_module
from .config import ConfigError, ConvertSettings, load_config
from .console import RichOperator
from .logs import setup_logging
from .manifest import ManifestError
from .modlist import ModlistError, read_modlist

app = typer.Typer(help="Convert a CurseForge modlist into a Modrinth pack index (cf2mr)")

_rich_console = Console()


def _fail(message: str, code: int = 1) -> None:
    typer.secho(message, err=True, fg="red")
    raise typer.Exit(code=code)


def _root(ctx: typer.Context) -> Path | None:
    return (ctx.obj or {}).get("root")


def _load_or_exit(ctx: typer.Context, **overrides: object) -> ConvertSettings:
    try:
        return load_config(root=_root(ctx), **overrides)
    except ConfigError as exc:
        _fail(str(exc), code=2)


def _read_or_exit(path: Path):
    try:
        return read_modlist(path)
    except ModlistError as exc:
        _fail(f"Error: {exc}")


def _load_manifest_or_exit(path: Path) -> manifest_module.Manifest:
    try:
        return manifest_module.load_manifest(path)
    except ManifestError as exc:
        _fail(str(exc))


@app.callback()
def main(
    ctx: typer.Context,
    root: Path = typer.Option(None, "--root", help="Directory holding .cf2mr.json and .env"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Runs with verbose logging"),
):
    ctx.obj = ctx.obj or {}
    ctx.obj["root"] = root
    setup_logging(verbose)


@app.command("parse")
def parse_command(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="CurseForge modlist HTML export"),
):
    """Parse a modlist and show the references that would be searched."""
    references = _read_or_exit(path)
    table = Table(title="Modlist", box=box.MINIMAL_DOUBLE_HEAD)
    table.add_column("#", justify="right", style="cyan")
    table.add_column("Name")
    table.add_column("Author")
    table.add_column("Source", style="dim")
    for reference in references:
        table.add_row(str(reference.position + 1), reference.name, reference.author or "-", reference.source_url or "-")
    _rich_console.print(table)
    typer.secho(f"{len(references)} mod(s) found.", fg="green")


@app.command("convert")
def convert_command(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="CurseForge modlist HTML export"),
    output: Path = typer.Option(None, "--output", "-o", help="Where to write modrinth.index.json"),
    mc_version: str = typer.Option(None, "--mc-version", help="Target Minecraft version"),
    game_versions: List[str] = typer.Option(None, "--game-version", help="Accepted game version filter (repeatable)"),
    loader: str = typer.Option(None, "--loader", help="Target mod loader (forge, neoforge, fabric, quilt)"),
    loader_version: str = typer.Option(None, "--loader-version", help="Loader version recorded in the index"),
    name: str = typer.Option(None, "--name", help="Pack name"),
    version_id: str = typer.Option(None, "--version-id", help="Pack version identifier"),
    chunk_size: int = typer.Option(None, "--chunk-size", help="Requests per rate-limit window"),
    cooldown: float = typer.Option(None, "--cooldown", help="Seconds to wait between chunks"),
):
    """Resolve every modlist entry on Modrinth and write a pack index."""
    references = _read_or_exit(path)
    settings = _load_or_exit(
        ctx,
        output=output,
        minecraft_version=mc_version,
        game_versions=game_versions or None,
        loader=loader,
        loader_version=loader_version,
        pack_name=name,
        version_id=version_id,
        chunk_size=chunk_size,
        cooldown_seconds=cooldown,
    )

    result = asyncio.run(pipeline_module.convert(references, settings, RichOperator(_rich_console)))
    if result is None:
        typer.secho("Aborted before contacting Modrinth.", fg="yellow")
        raise typer.Exit(code=0)

    _print_summary(result)
    if result.written:
        typer.secho(f"Pack index written to {settings.output}", fg="green")


def _print_summary(result: pipeline_module.ConversionResult) -> None:
    table = Table(title="Conversion summary", box=box.SIMPLE_HEAVY)
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("References", str(len(result.outcomes)))
    table.add_row("Resolved", Text(str(len(result.resolved)), style="green"))
    table.add_row("Unresolved", Text(str(len(result.unresolved)), style="red"))
    reasons = Counter(outcome.reason.value for outcome in result.unresolved)
    for reason, count in sorted(reasons.items()):
        table.add_row(f"  {reason}", str(count))
    _rich_console.print(table)

    if result.unresolved:
        detail = Table(title="Unresolved", box=box.MINIMAL)
        detail.add_column("Mod")
        detail.add_column("Reason")
        detail.add_column("Comment", style="dim")
        for outcome in result.unresolved:
            detail.add_row(outcome.reference.label, outcome.reason.value, outcome.comment)
        _rich_console.print(detail)


@app.command("pending")
def pending_command(
    index: Path = typer.Argument(Path("modrinth.index.json"), help="Pack index to inspect"),
):
    """List placeholder entries that still need a download."""
    manifest = _load_manifest_or_exit(index)
    pending = manifest_module.pending_entries(manifest)
    if not pending:
        typer.secho("Every entry is resolved.", fg="green")
        return

    table = Table(title="Pending entries", box=box.MINIMAL_DOUBLE_HEAD)
    table.add_column("Entry", justify="right", style="cyan")
    table.add_column("Comment")
    for position, entry in pending:
        table.add_row(str(position), entry.comment or "-")
    _rich_console.print(table)
    typer.secho(f"{len(pending)} of {len(manifest.files)} entries pending.", fg="yellow")


@app.command("fill")
def fill_command(
    index: Path = typer.Argument(..., help="Pack index to update"),
    entry: int = typer.Argument(..., help="Entry number as shown by 'cf2mr pending'"),
    file: Path = typer.Argument(..., help="Manually downloaded jar"),
    url: str = typer.Option(..., "--url", help="Download URL recorded for the file"),
    project_type: str = typer.Option("mod", "--project-type", help="mod, resourcepack or shader; picks the target directory"),
):
    """Back-fill a placeholder entry from a file you downloaded yourself."""
    manifest = _load_manifest_or_exit(index)
    try:
        updated = manifest_module.fill_placeholder(manifest, entry, file, url, project_type=project_type)
    except ManifestError as exc:
        _fail(str(exc))
    if not manifest_module.write_manifest(manifest, index):
        _fail(f"Could not write {index}")
    typer.secho(f"Filled entry {entry} with {updated.path} ({updated.file_size} bytes)", fg="green")
