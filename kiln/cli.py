"""Command-line interface for Kiln.

This module defines the CLI commands using Click framework.
It provides commands for building a project's assets, watching for changes,
and inspecting the assets declared in kiln.yaml.

Commands:
- build: Write every asset into the output directory.
- watch: Rebuild assets whenever their sources change.
- list: Show the declared assets and their target paths.
- dump: Print one dumped asset to stdout.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from . import __version__


@click.group()
@click.version_option(version=__version__, prog_name="kiln")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def cli(verbose: bool):
    """Kiln asset pipeline."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option("--debug", is_flag=True, help="Skip ?-prefixed filters (default: kiln.yaml debug)")
@click.option(
    "--output",
    type=click.Path(file_okay=False, path_type=Path),
    required=False,
    help="Directory to write to (overrides kiln.yaml output_dir)",
)
def build(debug: bool, output: Path | None):
    """Write every asset into the output directory."""
    project_root = Path.cwd()
    from .build import BuildError, build_assets

    try:
        result = build_assets(project_root, debug=debug or None, output_dir_override=output)
    except BuildError as exc:
        _report_build_error(exc)
        raise SystemExit(1) from None
    count = sum(len(paths) for paths in result.written.values())
    click.echo(f"Wrote {count} files for {len(result.written)} assets into {result.output_dir}")


@cli.command()
@click.option("--debug", is_flag=True, help="Skip ?-prefixed filters")
def watch(debug: bool):
    """Rebuild assets whenever their sources change."""
    project_root = Path.cwd()
    from .build import BuildError
    from .watcher import AssetWatcher

    watcher = AssetWatcher(project_root, debug=debug)
    try:
        watcher.start()
    except BuildError as exc:
        _report_build_error(exc)
        raise SystemExit(1) from None


@cli.command(name="list")
def list_assets():
    """Show the declared assets and their target paths."""
    project_root = Path.cwd()
    from .build import BuildError, create_asset_manager, create_filter_manager, load_config

    config = load_config(project_root)
    try:
        manager = create_asset_manager(
            config, project_root, create_filter_manager(config, project_root)
        )
    except BuildError as exc:
        _report_build_error(exc)
        raise SystemExit(1) from None
    for name in manager.names():
        click.echo(f"{name}: {manager.get(name).target_path}")


@cli.command()
@click.argument("name")
@click.option("--debug", is_flag=True, help="Skip ?-prefixed filters")
def dump(name: str, debug: bool):
    """Print one dumped asset to stdout."""
    project_root = Path.cwd()
    from .build import BuildError, create_asset_manager, create_filter_manager, load_config
    from .manager import AssetNotFoundError

    config = load_config(project_root)
    try:
        manager = create_asset_manager(
            config, project_root, create_filter_manager(config, project_root), debug=debug
        )
        content = manager.get(name).dump()
    except BuildError as exc:
        _report_build_error(exc)
        raise SystemExit(1) from None
    except AssetNotFoundError as exc:
        raise click.ClickException(exc.args[0]) from None
    click.echo(content, nl=False)


def _report_build_error(exc) -> None:
    """Display a user-friendly build error."""
    click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
    click.echo(click.style(f"  Asset: {exc.asset_name}", fg="yellow"), err=True)
    click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)


def main():
    """Entry point for the CLI application."""
    cli()
