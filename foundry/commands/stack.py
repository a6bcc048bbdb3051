"""Stack commands: install, status, reset, validate."""

import asyncio
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

import click

from foundry import FoundryError, InstallationCancelled, format_error, load_config
from foundry.component import (
    ComponentStatus,
    has_circular_dependencies,
    resolve_installation_order,
    validate_dependencies,
)
from foundry.config import StackConfig
from foundry.errors import ConfigError, ResolutionError, format_field_error
from foundry.setup import determine_next_step, load_state, reset_state
from foundry.stack import (
    Outcome,
    build_registry,
    plan_stack,
    render_plan,
    requested_components,
    watch_signals,
)

from .utils import build_orchestrator, exit_at_checkpoint, query_status

_logging = logging.getLogger(__name__)


@dataclass
class StackHealth:
    total: int
    installed: int
    healthy: int
    unhealthy: int
    not_installed: int

    @property
    def overall(self) -> str:
        if self.total == 0 or self.not_installed == self.total:
            return "not installed"
        if self.not_installed > 0:
            return "partial"
        if self.unhealthy > 0:
            return "degraded"
        return "healthy"


def calculate_overall_health(statuses: dict[str, ComponentStatus]) -> StackHealth:
    installed = sum(1 for s in statuses.values() if s.installed)
    healthy = sum(1 for s in statuses.values() if s.installed and s.healthy)
    return StackHealth(
        total=len(statuses),
        installed=installed,
        healthy=healthy,
        unhealthy=installed - healthy,
        not_installed=len(statuses) - installed,
    )


@click.group()
def stack():
    """Install and inspect the complete infrastructure stack."""


@stack.command()
@click.option(
    "--upgrade",
    is_flag=True,
    help="Upgrade already-installed add-on components with current configuration",
)
@click.option("--dry-run", is_flag=True, help="Show what would be installed without making changes")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def install(ctx, upgrade: bool, dry_run: bool, yes: bool):
    """Install the stack, resuming from the last checkpoint.

    Re-running after an interruption or failure continues where the previous
    run stopped. Ctrl-C stops after the current step and saves progress.
    """
    config_path: Path = ctx.obj["config_path"]
    try:
        asyncio.run(run_install(config_path, upgrade, dry_run, yes))
    except InstallationCancelled as e:
        click.echo(f"\n⚠ Installation interrupted before '{e.next_step}'; progress saved.", err=True)
        click.echo("Resume with: foundry stack install", err=True)
        sys.exit(130)
    except FoundryError as e:
        _logging.debug("Stack installation failed", exc_info=True)
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)


async def run_install(config_path: Path, upgrade: bool, dry_run: bool, yes: bool):
    config = load_config(config_path)
    click.echo(f"Using configuration: {config_path}")
    orchestrator = build_orchestrator(config, config_path)

    if dry_run:
        plan = await plan_stack(orchestrator, load_state(config_path), upgrade)
        click.echo("")
        click.echo(render_plan(plan))
        click.echo("\nNote: This is a dry-run. No changes will be made.")
        return

    if not yes and sys.stdin.isatty():
        if not click.confirm("\nContinue with installation?", default=False):
            click.echo("Aborted.")
            return

    click.echo("\n" + "=" * 60)
    click.echo("  FOUNDRY STACK INSTALLATION")
    click.echo("=" * 60)

    with watch_signals() as cancel:
        result = await orchestrator.run(
            upgrade=upgrade, exit_at=exit_at_checkpoint(), cancel=cancel
        )

    if result.outcome == Outcome.COMPLETED:
        click.echo("\n" + "=" * 60)
        if result.state.stack_complete:
            click.echo("  ✓ STACK INSTALLATION COMPLETE!")
        else:
            click.echo("  ✓ REQUESTED COMPONENTS INSTALLED")
        click.echo("=" * 60)
        click.echo(f"  Cluster:   {config.cluster.name}")
        click.echo(f"  Domain:    {config.cluster.domain}")
        if config.cluster.vip:
            click.echo(f"  K8s VIP:   {config.cluster.vip}")
        click.echo(
            f"  Installed: {len(result.installed)}, upgraded: {len(result.upgraded)}, "
            f"skipped: {len(result.skipped)}"
        )


@stack.command()
@click.pass_context
def status(ctx):
    """Show status of all stack components."""
    config_path: Path = ctx.obj["config_path"]
    try:
        asyncio.run(run_status(config_path))
    except FoundryError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)


async def run_status(config_path: Path):
    config = load_config(config_path)
    state = load_state(config_path)
    registry = build_registry(config)
    order = resolve_installation_order(registry, requested_components(config))

    statuses = {name: await query_status(registry, name) for name in order}

    click.echo(f"Checkpoint: {determine_next_step(state)}")
    gaps = state.gaps()
    if gaps:
        click.secho(
            f"⚠ Setup state skips {', '.join(gaps)}; those phases will not run again",
            fg="yellow",
        )
    click.echo("")
    click.echo("Stack Component Status:")
    click.echo("")
    click.echo(f"  {'COMPONENT':<20} {'INSTALLED':<10} {'HEALTHY':<8} {'VERSION':<15} MESSAGE")

    for name in order:
        s = statuses[name]
        settings = config.components.get(name)
        message = s.message
        if settings and s.installed and not s.is_version_satisfied(settings.version):
            message = f"older than configured {settings.version}"
        if len(message) > 50:
            message = message[:47] + "..."
        click.echo(
            f"  {s.status_icon} {name:<18} {'yes' if s.installed else 'no':<10} "
            f"{'yes' if s.healthy else 'no':<8} {s.version or '-':<15} {message}"
        )

    health = calculate_overall_health(statuses)
    click.echo("")
    click.echo(
        f"Overall: {health.overall} ({health.installed}/{health.total} installed, "
        f"{health.healthy} healthy)"
    )


@stack.command()
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def reset(ctx, yes: bool):
    """Clear every setup checkpoint so the next install starts from scratch.

    Recorded ``installed`` markers are cleared too. Components are not
    uninstalled; add-ons that are still present are detected live and skipped.
    """
    config_path: Path = ctx.obj["config_path"]
    try:
        load_state(config_path)
        if not yes and not click.confirm("Reset all setup checkpoints?", default=False):
            click.echo("Aborted.")
            return
        reset_state(config_path)
    except FoundryError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    click.echo(f"✓ Setup state reset in {config_path}")


def _check_network(config: StackConfig) -> None:
    if config.network is None:
        raise ConfigError("network configuration is required")


def _check_vip(config: StackConfig) -> None:
    if not config.cluster.vip:
        raise ConfigError(format_field_error("cluster", "vip", "is required"))


def _check_hosts(config: StackConfig) -> None:
    if not config.hosts:
        raise ConfigError("at least one host is required")


def _check_dependencies(config: StackConfig) -> None:
    registry = build_registry(config)
    requested = requested_components(config)
    validate_dependencies(registry, requested)
    if has_circular_dependencies(registry):
        raise ResolutionError("circular dependency among registered components")
    resolve_installation_order(registry, requested)


VALIDATIONS = [
    ("Network configuration", _check_network),
    ("VIP configuration", _check_vip),
    ("Host configuration", _check_hosts),
    ("Component dependencies", _check_dependencies),
]


@stack.command()
@click.pass_context
def validate(ctx):
    """Validate the stack configuration without installing anything."""
    config_path: Path = ctx.obj["config_path"]
    click.echo("Validating stack configuration...")
    click.echo("")

    try:
        config = load_config(config_path)
    except FoundryError as e:
        click.echo("✗ Configuration structure failed")
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    click.echo("✓ Configuration structure passed")

    for name, check in VALIDATIONS:
        try:
            check(config)
        except FoundryError as e:
            click.echo(f"✗ {name} failed")
            click.echo(format_error(str(e)), err=True)
            sys.exit(1)
        click.echo(f"✓ {name} passed")

    click.echo("")
    click.echo("✓ All validation checks passed")
    click.echo("Run 'foundry stack install' to deploy the stack.")
