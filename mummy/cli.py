"""Command-line interface for Mummy.

This module defines the CLI commands using Click framework.

Commands:
- build: Generate the site into the target directory.
- clean: Remove the generated site and its description sidecars.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from . import __version__


@click.group()
@click.version_option(version=__version__, prog_name="mummy")
def cli():
    """Mummy static site generator."""


def _display_path(path: Path, project_root: Path) -> Path:
    try:
        return path.relative_to(project_root)
    except ValueError:
        return path


@cli.command()
@click.option("--full", is_flag=True, help="Regenerate every page, ignoring cached state")
@click.option("--verbose", "-v", is_flag=True, help="Log each planned and generated artifact")
def build(full: bool, verbose: bool):
    """Generate the site into the target directory."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    project_root = Path.cwd()
    from .build import BuildError, mummify_site

    try:
        result = mummify_site(project_root, full=full)
    except BuildError as exc:
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        if exc.source_path is not None:
            rel_path = _display_path(exc.source_path, project_root)
            click.echo(click.style(f"  File: {rel_path}", fg="yellow"), err=True)
        click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
        raise SystemExit(1) from None
    click.echo(f"Mummified {len(result.artifacts)} artifacts into {result.output_dir}")


@cli.command()
def clean():
    """Remove the generated site and its description sidecars."""
    project_root = Path.cwd()
    from .build import clean_site
    from .errors import MummyError

    try:
        removed = clean_site(project_root)
    except MummyError as exc:
        raise click.ClickException(exc.message) from exc
    for directory in removed:
        click.echo(f"Removed {_display_path(directory, project_root)}")


def main():
    cli()


if __name__ == "__main__":
    main()
