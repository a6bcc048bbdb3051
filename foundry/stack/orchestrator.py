"""Resumable, phased installation of a stack.

A run goes through host readiness, network readiness, the components in
dependency order, and finally marks the stack complete. The setup state is
saved after every unit of work, so a failed or interrupted run can simply
be started again and continues where it stopped.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

import click

from foundry.component import ComponentConfig, Registry, resolve_installation_order
from foundry.errors import InstallationCancelled, PhaseError
from foundry.setup import Phase, SetupState, determine_next_step, load_state, save_state

from .catalog import PlanEntry, addon_entry, default_plan
from .readiness import ReadinessCheck

_logging = logging.getLogger(__name__)


class Outcome(Enum):
    COMPLETED = "completed"
    ALREADY_COMPLETE = "already_complete"
    CHECKPOINT_EXIT = "checkpoint_exit"


@dataclass
class InstallResult:
    outcome: Outcome
    state: SetupState
    installed: list[str] = field(default_factory=list)
    upgraded: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


class StackOrchestrator:
    """Drives a stack through its setup phases.

    Args:
        registry: Components available for installation
        store_path: Stack config file holding the setup state
        hosts_ready: Awaited once per run; False or an exception stops the run
        network_ready: Awaited when the network flags are not yet set
        component_configs: Configuration bag per component name
        requested: Components to install; defaults to every plan entry
        plan: Plan entries; defaults to the built-in catalogue
        echo: Sink for progress lines
    """

    def __init__(
        self,
        registry: Registry,
        store_path: Path,
        *,
        hosts_ready: ReadinessCheck,
        network_ready: ReadinessCheck,
        component_configs: dict[str, ComponentConfig] | None = None,
        requested: list[str] | None = None,
        plan: list[PlanEntry] | None = None,
        echo: Callable[[str], None] = click.echo,
    ):
        self.registry = registry
        self.store_path = Path(store_path)
        self.hosts_ready = hosts_ready
        self.network_ready = network_ready
        self.component_configs = component_configs or {}
        self.plan = plan if plan is not None else default_plan()
        self.requested = requested
        self.echo = echo
        self._tracked: set[str] = set()

    def resolve_entries(self) -> list[PlanEntry]:
        """Plan entries in dependency order.

        Components pulled in as dependencies without an entry of their own
        are treated like add-ons.

        Raises:
            ResolutionError: unknown component or dependency cycle
        """
        by_name = {entry.name: entry for entry in self.plan}
        requested = self.requested if self.requested is not None else list(by_name)
        order = resolve_installation_order(self.registry, requested)
        return [by_name.get(name) or addon_entry(name) for name in order]

    async def probe(self, name: str) -> bool:
        """Ask a component whether it is installed; any failure counts as no."""
        component = self.registry.get(name)
        if component is None:
            return False
        try:
            status = await component.status()
        except Exception as e:
            _logging.debug(f"Status query for {name} failed: {e}")
            return False
        return status is not None and status.installed

    async def is_installed(self, state: SetupState, entries: list[PlanEntry]) -> bool:
        """Recorded flags for base components, live status for add-ons."""
        for entry in entries:
            if not await entry.is_done(state, self.probe):
                return False
        return True

    def _save(self, state: SetupState) -> None:
        save_state(self.store_path, state, installed=sorted(self._tracked))

    def _check_cancelled(self, state: SetupState, cancel: asyncio.Event | None) -> None:
        if cancel is not None and cancel.is_set():
            self._save(state)
            next_step = determine_next_step(state)
            _logging.info(f"Installation cancelled; state saved at checkpoint {next_step}")
            raise InstallationCancelled(next_step)

    async def run(
        self,
        *,
        upgrade: bool = False,
        exit_at: str | None = None,
        cancel: asyncio.Event | None = None,
    ) -> InstallResult:
        """Install everything that is not installed yet.

        Args:
            upgrade: Re-run upgrade-eligible add-ons that are already installed
            exit_at: Stop cleanly right after this component's state is saved
            cancel: Checked between phases; when set, save and stop

        Raises:
            InstallationCancelled: ``cancel`` was set; safe to resume
            PhaseError: a phase or component failed
            ResolutionError: the component order could not be resolved
            StateStoreError: the setup state could not be read or written
        """
        state = load_state(self.store_path)
        entries = self.resolve_entries()

        if not upgrade and await self.is_installed(state, entries):
            self.echo("✓ Stack is already complete!")
            self.echo("To upgrade components with new configuration, use --upgrade")
            return InstallResult(Outcome.ALREADY_COMPLETE, state)

        self.echo(f"Current checkpoint: {determine_next_step(state)}")
        result = InstallResult(Outcome.COMPLETED, state)

        self._check_cancelled(state, cancel)
        await self._ensure_hosts()

        self._check_cancelled(state, cancel)
        await self._ensure_network(state)

        stopped = await self._install_components(state, entries, result, upgrade, exit_at, cancel)
        if stopped:
            result.outcome = Outcome.CHECKPOINT_EXIT
            return result

        self._check_cancelled(state, cancel)
        self.echo("\n[4/4] Final Validation")
        next_step = determine_next_step(state)
        if next_step == Phase.COMPLETE:
            # Every earlier flag is set; a subset run never marks the terminal flag.
            if not state.stack_complete:
                state.stack_complete = True
                self._save(state)
            self.echo("✓ Stack installation complete")
        elif state.stack_complete:
            self.echo("✓ Requested components installed")
        else:
            self.echo(f"✓ Requested components installed; stack not complete (next: {next_step})")
        return result

    async def _ensure_hosts(self) -> None:
        self.echo("\n[1/4] Host Configuration")
        try:
            ready = await self.hosts_ready()
        except Exception as e:
            raise PhaseError("host configuration", e) from e
        if not ready:
            raise PhaseError("host configuration", "one or more hosts are not ready")
        self.echo("✓ Hosts ready")

    async def _ensure_network(self, state: SetupState) -> None:
        self.echo("\n[2/4] Network Planning & Validation")
        if state.network_planned and state.network_validated:
            self.echo("✓ Network already planned and validated (skipping)")
            return

        try:
            ready = await self.network_ready()
        except Exception as e:
            raise PhaseError("network planning", e) from e
        if not ready:
            raise PhaseError(
                "network planning",
                "network configuration incomplete (a network section and cluster VIP are required)",
            )

        state.network_planned = True
        state.network_validated = True
        self._save(state)
        self.echo("✓ Network planned and validated")

    async def _install_components(
        self,
        state: SetupState,
        entries: list[PlanEntry],
        result: InstallResult,
        upgrade: bool,
        exit_at: str | None,
        cancel: asyncio.Event | None,
    ) -> bool:
        """Returns True when the run stopped at the ``exit_at`` checkpoint."""
        self.echo("\n[3/4] Component Installation")
        total = len(entries)

        for i, entry in enumerate(entries, 1):
            self._check_cancelled(state, cancel)

            component = self.registry.get(entry.name)
            config = self.component_configs.get(entry.name, {})
            done = await entry.is_done(state, self.probe)

            if done and not (upgrade and entry.upgradable):
                self.echo(f"[{i}/{total}] {entry.name}: ✓ Already installed (skipping)")
                result.skipped.append(entry.name)
                if entry.sync_when_skipped:
                    self.echo(f"  Syncing {entry.name} configuration...")
                    try:
                        await component.sync(config)
                    except Exception as e:
                        raise PhaseError(f"{entry.name} sync", e) from e
                continue

            action = "upgrade" if done else "installation"
            self.echo(f"[{i}/{total}] {'Upgrading' if done else 'Installing'} {entry.name}...")
            try:
                if done:
                    await component.upgrade(config)
                else:
                    await component.install(config)
                if entry.sync_after_install:
                    await component.sync(config)
            except Exception as e:
                raise PhaseError(f"{entry.name} {action}", e) from e

            try:
                await component.reconcile(config)
            except Exception as e:
                _logging.warning(f"Post-install reconcile for {entry.name} failed: {e}")
                self.echo(f"  ⚠ Warning: {entry.name} post-install reconcile failed: {e}")

            entry.mark_done(state)
            self._tracked.add(entry.name)
            self._save(state)
            self.echo("  ✓ State updated")
            (result.upgraded if done else result.installed).append(entry.name)

            if exit_at and exit_at == entry.name:
                self.echo(f"\n⚠ Exiting at checkpoint '{entry.name}'")
                self.echo("Resume with: foundry stack install")
                return True

        return False


__all__ = ["Outcome", "InstallResult", "StackOrchestrator"]
