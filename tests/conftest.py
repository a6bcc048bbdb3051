"""Pytest fixtures and utilities for foundry tests."""

import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest
import yaml

from foundry.component import Component, ComponentStatus, Registry
from foundry.stack import COMPONENT_DEPENDENCIES, StackOrchestrator


class FakeComponent(Component):
    """In-memory component that records every operation into a shared call log.

    ``fail_on`` names operations that raise. ``on`` maps an operation to a
    callable run after it is recorded, e.g. to set a cancel event.
    """

    def __init__(
        self,
        name: str,
        dependencies: list[str] | None = None,
        calls: list | None = None,
        installed: bool = False,
        fail_on: set[str] | None = None,
        on: dict[str, Callable[[], None]] | None = None,
    ):
        self.name = name
        self.dependencies = list(dependencies or [])
        self.calls = calls if calls is not None else []
        self.installed = installed
        self.fail_on = set(fail_on or ())
        self.on = dict(on or {})
        self.configs: list[dict] = []

    def _record(self, operation: str) -> None:
        self.calls.append((self.name, operation))
        if operation in self.fail_on:
            raise RuntimeError(f"{self.name} {operation} exploded")
        if operation in self.on:
            self.on[operation]()

    async def install(self, config):
        self.configs.append(config)
        self._record("install")
        self.installed = True

    async def upgrade(self, config):
        self.configs.append(config)
        self._record("upgrade")

    async def sync(self, config):
        self._record("sync")

    async def reconcile(self, config):
        self._record("reconcile")

    async def uninstall(self):
        self._record("uninstall")
        self.installed = False

    async def status(self) -> ComponentStatus:
        if "status" in self.fail_on:
            raise RuntimeError(f"{self.name} status exploded")
        return ComponentStatus(installed=self.installed, healthy=self.installed)


def ops(calls: list, operation: str) -> list[str]:
    """Component names that saw ``operation``, in call order."""
    return [name for name, op in calls if op == operation]


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store_path(temp_dir: Path) -> Path:
    """A stack config file with unrelated content and no setup state."""
    path = temp_dir / "stack.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "cluster": {"name": "lab", "domain": "lab.example.com", "vip": "10.0.0.100"},
                "hosts": [{"hostname": "node1", "address": "10.0.0.11"}],
                "network": {"gateway": "10.0.0.1"},
            },
            sort_keys=False,
        )
    )
    return path


@pytest.fixture
def calls() -> list:
    return []


@pytest.fixture
def stack_registry(calls: list) -> Registry:
    """Fake components for the whole built-in catalogue, sharing one call log."""
    return Registry(
        [FakeComponent(name, deps, calls) for name, deps in COMPONENT_DEPENDENCIES.items()]
    )


@pytest.fixture
def echoed() -> list[str]:
    return []


@pytest.fixture
def make_orchestrator(stack_registry: Registry, store_path: Path, echoed: list[str], mocker):
    """Factory for orchestrators over the fake catalogue with ready hosts and network."""

    def factory(**kwargs) -> StackOrchestrator:
        kwargs.setdefault("hosts_ready", mocker.AsyncMock(return_value=True))
        kwargs.setdefault("network_ready", mocker.AsyncMock(return_value=True))
        kwargs.setdefault("echo", echoed.append)
        registry = kwargs.pop("registry", stack_registry)
        return StackOrchestrator(registry, store_path, **kwargs)

    return factory
