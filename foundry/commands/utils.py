"""Shared helpers for commands."""

import os
from pathlib import Path

from foundry.component import ComponentStatus, Registry
from foundry.config import StackConfig
from foundry.stack import (
    StackOrchestrator,
    build_registry,
    hosts_check,
    network_check,
    requested_components,
)

EXIT_AT_CHECKPOINT_ENV = "FOUNDRY_EXIT_AT_CHECKPOINT"


def exit_at_checkpoint() -> str | None:
    """Component named by FOUNDRY_EXIT_AT_CHECKPOINT, used to test resumption."""
    return os.environ.get(EXIT_AT_CHECKPOINT_ENV) or None


def build_orchestrator(
    config: StackConfig, config_path: Path, registry: Registry | None = None
) -> StackOrchestrator:
    registry = registry or build_registry(config)
    return StackOrchestrator(
        registry,
        config_path,
        hosts_ready=hosts_check(config),
        network_ready=network_check(config),
        component_configs={name: config.component_config(name) for name in registry.names()},
        requested=requested_components(config),
    )


async def query_status(registry: Registry, name: str) -> ComponentStatus:
    """Status of ``name``; lookup and query failures become a not-installed status."""
    component = registry.get(name)
    if component is None:
        return ComponentStatus(installed=False, message="not found in registry")
    try:
        return await component.status()
    except Exception as e:
        return ComponentStatus(installed=False, message=f"error querying status: {e}")
