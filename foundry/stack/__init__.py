"""Stack installation: catalogue, readiness checks and the orchestrator."""

from .cancellation import watch_signals
from .catalog import (
    ADDON_COMPONENTS,
    BASE_COMPONENTS,
    COMPONENT_DEPENDENCIES,
    PlanEntry,
    addon_entry,
    build_registry,
    default_plan,
    flags_set,
    live_status,
    requested_components,
    set_flags,
)
from .orchestrator import InstallResult, Outcome, StackOrchestrator
from .planning import Plan, PlanStep, plan_stack, render_plan
from .readiness import hosts_check, network_check

__all__ = [
    "BASE_COMPONENTS",
    "ADDON_COMPONENTS",
    "COMPONENT_DEPENDENCIES",
    "PlanEntry",
    "addon_entry",
    "build_registry",
    "default_plan",
    "flags_set",
    "live_status",
    "set_flags",
    "requested_components",
    "InstallResult",
    "Outcome",
    "StackOrchestrator",
    "Plan",
    "PlanStep",
    "plan_stack",
    "render_plan",
    "hosts_check",
    "network_check",
    "watch_signals",
]
