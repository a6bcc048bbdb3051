"""Component commands: list, status."""

import asyncio
import sys
from pathlib import Path

import click

from foundry import FoundryError, format_error, format_suggestion, load_config
from foundry.component import resolve_installation_order
from foundry.setup import installed_components
from foundry.stack import build_registry, requested_components

from .utils import query_status


@click.group()
def component():
    """Inspect individual stack components."""


@component.command(name="list")
@click.pass_context
def list_components(ctx):
    """List components in installation order."""
    config_path: Path = ctx.obj["config_path"]
    try:
        config = load_config(config_path)
        registry = build_registry(config)
        order = resolve_installation_order(registry, requested_components(config))
        recorded = installed_components(config_path)
    except FoundryError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)

    for name in order:
        deps = ", ".join(registry.get(name).dependencies) or "-"
        marker = "●" if name in recorded else "○"
        click.echo(f"{marker} {name:<16} depends on: {deps}")


@component.command()
@click.argument("name")
@click.pass_context
def status(ctx, name: str):
    """Show the live status of a single component."""
    config_path: Path = ctx.obj["config_path"]
    try:
        config = load_config(config_path)
    except FoundryError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)

    registry = build_registry(config)
    if not registry.has(name):
        click.echo(
            format_suggestion(
                f"component '{name}' not found", "run 'foundry component list' to see components"
            ),
            err=True,
        )
        sys.exit(1)

    s = asyncio.run(query_status(registry, name))
    click.echo(f"{s.status_icon} {name}")
    click.echo(f"  Installed: {'yes' if s.installed else 'no'}")
    click.echo(f"  Healthy:   {'yes' if s.healthy else 'no'}")
    click.echo(f"  Version:   {s.version or '-'}")
    if s.message:
        click.echo(f"  Message:   {s.message}")
