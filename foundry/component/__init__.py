"""Installable components, their registry and dependency resolution."""

from .models import Component, ComponentConfig, ComponentStatus
from .registry import Registry
from .resolution import (
    has_circular_dependencies,
    resolve_installation_order,
    validate_dependencies,
)
from .shell import ShellComponent, command_env, render_command

__all__ = [
    "Component",
    "ComponentConfig",
    "ComponentStatus",
    "Registry",
    "ShellComponent",
    "render_command",
    "command_env",
    "resolve_installation_order",
    "validate_dependencies",
    "has_circular_dependencies",
]
