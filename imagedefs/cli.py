"""Thin CLI wrapper for imagedefs.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console
from rich.markup import escape

from imagedefs import __version__
from imagedefs.config import Settings, load_settings, print_settings_json
from imagedefs.errors import ImageDefsError

if TYPE_CHECKING:
    from imagedefs.definitions.registry import DefinitionRegistry

app = typer.Typer(
    name="imagedefs",
    help="Image definition tooling - generate tags and plan builds",
    no_args_is_help=True,
)
console = Console()

RepoOption = Annotated[
    Path,
    typer.Option("--repo", "-r", help="Repository root containing the definitions"),
]
ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Repository config file (default: <repo>/config.json)"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output as JSON"),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"imagedefs version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Image definition tooling - generate tags and plan builds."""


def _settings(repo: Path, config_file: Path | None) -> Settings:
    settings = load_settings(config_file or repo / "config.json")
    logging.basicConfig(level=settings.log_level)
    return settings


def _load(
    repo: Path, config_file: Path | None
) -> "tuple[Settings, DefinitionRegistry]":
    from imagedefs.definitions.io import load_definitions

    settings = _settings(repo, config_file)
    try:
        return settings, load_definitions(repo, settings)
    except FileNotFoundError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None
    except ImageDefsError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None


def _echo_json(data: object) -> None:
    typer.echo(json.dumps(data, indent=2))


@app.command()
def config(
    repo: RepoOption = Path("."),
    config_file: ConfigOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show effective configuration."""
    settings = _settings(repo, config_file)
    if json_output:
        typer.echo(print_settings_json(settings))
        return

    console.print("[bold]Effective Configuration:[/bold]")
    console.print()
    console.print("[bold]Definitions:[/bold]")
    console.print(f"  Definitions directory: {settings.definitions_dir}")
    console.print(f"  Manifest file:         {settings.image_build_config_file}")
    console.print()
    console.print("[bold]Registry:[/bold]")
    console.print(f"  Container registry:    {settings.container_registry}")
    console.print(f"  Registry path:         {settings.container_registry_path}")
    console.print()
    console.print("[bold]Staging:[/bold]")
    console.print(f"  Staging directory:     {settings.staging_dir}")
    console.print(f"  Files to stage:        {len(settings.files_to_stage)}")
    console.print()
    console.print("[bold]Operational:[/bold]")
    console.print(f"  Log level:             {settings.log_level}")


@app.command()
def definitions(
    repo: RepoOption = Path("."),
    config_file: ConfigOption = None,
    json_output: JsonOption = False,
) -> None:
    """List loaded definitions."""
    _, registry = _load(repo, config_file)

    rows = []
    for definition_id in registry.get_definition_list():
        build = registry.require_build_settings(definition_id)
        rows.append(
            {
                "id": definition_id,
                "version": registry.get_version(definition_id),
                "variants": registry.get_variants(definition_id),
                "parent": build.parent,
            }
        )

    if json_output:
        _echo_json(rows)
        return
    if not rows:
        console.print("[yellow]No definitions found[/yellow]")
        return
    console.print(f"[bold]Found {len(rows)} definition(s):[/bold]")
    for row in rows:
        console.print(f"  [green]{row['id']}[/green] ({row['version'] or 'dev'})")
        if row["variants"]:
            console.print(f"    Variants: {', '.join(row['variants'])}")
        if row["parent"]:
            console.print(f"    Parent: {row['parent']}")


@app.command()
def tags(
    definition_id: Annotated[str, typer.Argument(help="Definition ID")],
    release: Annotated[
        str,
        typer.Option("--release", help="Release (v1.2.3) or branch name"),
    ] = "main",
    mode: Annotated[
        str,
        typer.Option(
            "--mode",
            "-m",
            help="Version part handling: all-latest, all, full-only, major-minor, major",
        ),
    ] = "all",
    registry_host: Annotated[
        str | None,
        typer.Option("--registry", help="Registry host (default: from config)"),
    ] = None,
    registry_path: Annotated[
        str | None,
        typer.Option("--registry-path", help="Registry path (default: from config)"),
    ] = None,
    variant: Annotated[
        str | None,
        typer.Option("--variant", help="Variant to tag"),
    ] = None,
    repo: RepoOption = Path("."),
    config_file: ConfigOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show the tags a definition gets for a release."""
    from imagedefs.tags.generator import get_tag_list

    settings, registry = _load(repo, config_file)
    try:
        tag_list = get_tag_list(
            registry,
            definition_id,
            release,
            mode,
            registry_host or settings.container_registry,
            registry_path or settings.container_registry_path,
            variant,
        )
    except (ImageDefsError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None

    if tag_list is None:
        console.print(f"[red]Definition not found: {definition_id}[/red]")
        raise typer.Exit(code=1)
    if json_output:
        _echo_json(tag_list)
        return
    for tag in tag_list:
        console.print(tag)


@app.command()
def latest(
    definition_id: Annotated[str, typer.Argument(help="Definition ID")],
    registry_host: Annotated[
        str | None,
        typer.Option("--registry", help="Registry host (default: from config)"),
    ] = None,
    registry_path: Annotated[
        str | None,
        typer.Option("--registry-path", help="Registry path (default: from config)"),
    ] = None,
    repo: RepoOption = Path("."),
    config_file: ConfigOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show the latest tags of a definition."""
    from imagedefs.tags.generator import get_latest_tag

    settings, registry = _load(repo, config_file)
    latest_tags = get_latest_tag(
        registry,
        definition_id,
        registry_host or settings.container_registry,
        registry_path or settings.container_registry_path,
    )
    if latest_tags is None:
        console.print(f"[red]Definition not found: {definition_id}[/red]")
        raise typer.Exit(code=1)
    if json_output:
        _echo_json(latest_tags)
        return
    for tag in latest_tags:
        console.print(tag)


@app.command()
def lookup(
    tag: Annotated[str, typer.Argument(help="Fully-qualified tag")],
    registry_host: Annotated[
        str | None,
        typer.Option("--registry", help="Registry host (default: any)"),
    ] = None,
    registry_path: Annotated[
        str | None,
        typer.Option("--registry-path", help="Registry path (default: any)"),
    ] = None,
    repo: RepoOption = Path("."),
    config_file: ConfigOption = None,
    json_output: JsonOption = False,
) -> None:
    """Resolve a tag to the definition and variant that produce it."""
    from imagedefs.tags.lookup import get_definition_from_tag

    _, registry = _load(repo, config_file)
    try:
        match = get_definition_from_tag(registry, tag, registry_host, registry_path)
    except ImageDefsError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None

    if match is None:
        console.print(f"[red]Unknown tag: {tag}[/red]")
        raise typer.Exit(code=1)
    if json_output:
        _echo_json({"id": match.id, "variant": match.variant})
        return
    console.print(f"[green]{match.id}[/green] (variant: {match.variant or '-'})")


@app.command("update-tag")
def update_tag(
    tag: Annotated[str, typer.Argument(help="Current fully-qualified tag")],
    version: Annotated[str, typer.Option("--version", help="Updated version")],
    current_registry: Annotated[
        str | None,
        typer.Option("--registry", help="Current registry host (default: from config)"),
    ] = None,
    current_registry_path: Annotated[
        str | None,
        typer.Option("--registry-path", help="Current registry path (default: from config)"),
    ] = None,
    updated_registry: Annotated[
        str | None,
        typer.Option("--to-registry", help="Updated registry host"),
    ] = None,
    updated_registry_path: Annotated[
        str | None,
        typer.Option("--to-registry-path", help="Updated registry path"),
    ] = None,
    variant: Annotated[
        str | None,
        typer.Option("--variant", help="Variant to tag"),
    ] = None,
    repo: RepoOption = Path("."),
    config_file: ConfigOption = None,
) -> None:
    """Rewrite a tag for a new version and registry."""
    from imagedefs.tags.lookup import get_updated_tag

    settings, registry = _load(repo, config_file)
    try:
        updated = get_updated_tag(
            registry,
            tag,
            current_registry or settings.container_registry,
            current_registry_path or settings.container_registry_path,
            version,
            updated_registry,
            updated_registry_path,
            variant,
        )
    except ImageDefsError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None
    typer.echo(updated)


@app.command()
def plan(
    page: Annotated[int, typer.Option("--page", "-p", help="Page to show (1-based)")] = 1,
    page_total: Annotated[
        int, typer.Option("--page-total", "-n", help="Number of pages")
    ] = 1,
    skip: Annotated[
        list[str] | None,
        typer.Option("--skip", help="Definition to leave out (can be repeated)"),
    ] = None,
    repo: RepoOption = Path("."),
    config_file: ConfigOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show one page of the build plan."""
    from imagedefs.builds.planner import get_sorted_definition_build_list

    _, registry = _load(repo, config_file)
    try:
        items = get_sorted_definition_build_list(
            registry, page=page, page_total=page_total, definitions_to_skip=skip or ()
        )
    except (ImageDefsError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None

    if json_output:
        _echo_json([item.to_dict() for item in items])
        return
    console.print(f"[bold]Page {page} of {page_total}:[/bold]")
    if not items:
        console.print("  [yellow](empty)[/yellow]")
    for item in items:
        suffix = f":{item.variant}" if item.variant else ""
        console.print(f"  {item.id}{suffix}")


if __name__ == "__main__":
    app()
