"""
idlmeta command-line interface.

Commands:
- validate: Parse files and report every structural issue
- resolve: Resolve a file's include graph and print it as a tree
- fmt: Print (or check) the canonical text of a file
- dump: Print the JSON wire form of a parsed file
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from idlmeta._version import __version__
from idlmeta.core import ir
from idlmeta.core.errors import IdlError, ResolutionError, format_chain
from idlmeta.core.loader import FileLoader
from idlmeta.core.manifest import ProjectManifest, find_manifest, load_manifest
from idlmeta.core.parser import parse_program
from idlmeta.core.printer import format_program
from idlmeta.core.resolver import resolve_file
from idlmeta.core.validator import validate

app = typer.Typer(
    help="idlmeta - inspect, validate and resolve IDL programs",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)


@dataclass
class CliState:
    manifest: ProjectManifest


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"idlmeta version {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    manifest: Annotated[
        Path | None,
        typer.Option("--manifest", "-m", help="Path to idlmeta.toml (searched upwards by default)"),
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log debug output to stderr")
    ] = False,
    version: Annotated[
        bool | None,
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version"),
    ] = None,
) -> None:
    """Load the project manifest and configure logging."""
    manifest_path = manifest or find_manifest(Path.cwd())
    try:
        project = load_manifest(manifest_path)
    except (OSError, ValueError) as e:
        err_console.print(f"[red]Cannot read manifest {manifest_path}:[/red] {escape(str(e))}")
        raise typer.Exit(code=1) from None

    logging.basicConfig(
        level=logging.DEBUG if verbose else project.logging.level,
        format=project.logging.format,
    )
    if manifest_path:
        logger.debug("Using manifest %s", manifest_path)
    ctx.obj = CliState(manifest=project)


def _state(ctx: typer.Context) -> CliState:
    if ctx.obj is None:
        ctx.obj = CliState(manifest=ProjectManifest())
    return ctx.obj


def _fail(error: IdlError) -> typer.Exit:
    """Print an error the way every command reports it and return the exit."""
    err_console.print(f"[red]{error.kind.value}[/red]: {escape(str(error))}", highlight=False)
    if isinstance(error, ResolutionError) and error.chain:
        err_console.print(f"  include chain: {format_chain(error.chain)}", highlight=False)
    return typer.Exit(code=1)


def _parse(path: Path) -> ir.ProgramType:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        err_console.print(f"[red]Cannot read {path}:[/red] {e}")
        raise typer.Exit(code=1) from None
    try:
        return parse_program(text, path)
    except IdlError as e:
        raise _fail(e) from None


@app.command(name="validate")
def validate_command(
    ctx: typer.Context,
    files: Annotated[
        list[Path] | None, typer.Argument(help="IDL files (defaults to the manifest sources)")
    ] = None,
) -> None:
    """Parse and validate IDL files, reporting every issue found."""
    paths = files or _state(ctx).manifest.discover_sources()
    if not paths:
        err_console.print("No IDL files to validate.")
        raise typer.Exit(code=1)

    table = Table("File", "Kind", "Location", "Message")
    count = 0
    for path in paths:
        for issue in validate(_parse(path)):
            count += 1
            table.add_row(str(path), issue.kind.value, issue.path, escape(issue.message))

    if count:
        console.print(table)
        err_console.print(f"{count} issue(s) found.", highlight=False)
        raise typer.Exit(code=1)
    console.print(f"OK: {len(paths)} file(s) valid.")


def _add_children(tree: Tree, meta: ir.ProgramMeta, seen: set[int]) -> None:
    for include_name, child in meta.includes.items():
        if id(child) in seen:
            tree.add(f"{include_name} [dim](shared)[/dim]")
            continue
        seen.add(id(child))
        branch = tree.add(f"[bold]{include_name}[/bold] [dim]{child.file_path}[/dim]")
        _add_children(branch, child, seen)


@app.command(name="resolve")
def resolve_command(
    ctx: typer.Context,
    file: Annotated[Path, typer.Argument(help="Root IDL file")],
    as_json: Annotated[
        bool, typer.Option("--json", help="Print program names and paths as JSON")
    ] = False,
) -> None:
    """Resolve the include graph of a file."""
    config = _state(ctx).manifest.resolver
    loader = FileLoader([file.parent, *config.include_dirs])
    try:
        meta = resolve_file(str(file.resolve()), loader, max_workers=config.max_workers)
    except IdlError as e:
        raise _fail(e) from None

    if as_json:
        graph = {
            m.name: {"path": m.file_path, "includes": sorted(m.includes)} for m in meta.walk()
        }
        typer.echo(json.dumps(graph, indent=2))
        return

    tree = Tree(f"[bold]{meta.name}[/bold] [dim]{meta.file_path}[/dim]")
    _add_children(tree, meta, {id(meta)})
    console.print(tree)


@app.command(name="fmt")
def fmt_command(
    file: Annotated[Path, typer.Argument(help="IDL file")],
    check: Annotated[
        bool, typer.Option("--check", help="Exit 1 if the file is not canonically formatted")
    ] = False,
) -> None:
    """Print the canonical text of a file."""
    formatted = format_program(_parse(file))
    if check:
        if file.read_text(encoding="utf-8") != formatted:
            err_console.print(f"{file} is not formatted")
            raise typer.Exit(code=1)
        console.print(f"{file} is formatted")
        return
    typer.echo(formatted, nl=False)


@app.command(name="dump")
def dump_command(
    file: Annotated[Path, typer.Argument(help="IDL file")],
) -> None:
    """Print the JSON wire form of a parsed file."""
    typer.echo(_parse(file).model_dump_json(indent=2))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
