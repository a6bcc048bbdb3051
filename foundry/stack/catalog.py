"""Built-in stack components and the installation plan over them."""

from dataclasses import dataclass
from typing import Awaitable, Callable

from foundry.component import Registry, ShellComponent
from foundry.config import StackConfig
from foundry.setup import SetupState

StatusProbe = Callable[[str], Awaitable[bool]]
Predicate = Callable[[SetupState, StatusProbe], Awaitable[bool]]

BASE_COMPONENTS = ["openbao", "dns", "zot", "k3s"]

# Prometheus comes before contour, cert-manager and seaweedfs: they enable
# ServiceMonitors, whose CRD ships with the prometheus chart.
ADDON_COMPONENTS = [
    "gateway-api",
    "storage",
    "prometheus",
    "contour",
    "cert-manager",
    "seaweedfs",
    "external-dns",
    "loki",
    "grafana",
    "velero",
]

COMPONENT_DEPENDENCIES: dict[str, list[str]] = {
    "openbao": [],
    "dns": ["openbao"],
    "zot": ["openbao", "dns"],
    "k3s": ["openbao", "dns", "zot"],
    "gateway-api": ["k3s"],
    "storage": ["k3s"],
    "prometheus": ["storage"],
    "contour": ["k3s", "gateway-api", "prometheus"],
    "cert-manager": ["k3s", "prometheus"],
    "seaweedfs": ["storage", "prometheus"],
    "external-dns": ["k3s", "dns"],
    "loki": ["storage", "seaweedfs"],
    "grafana": ["prometheus", "loki"],
    "velero": ["seaweedfs"],
}


@dataclass(frozen=True)
class PlanEntry:
    """How the orchestrator treats one component.

    ``is_done`` decides whether the component can be skipped, ``mark_done``
    records success in the setup state.
    """
    name: str
    is_done: Predicate
    mark_done: Callable[[SetupState], None]
    upgradable: bool = False
    sync_when_skipped: bool = False
    sync_after_install: bool = False


def flags_set(*flags: str) -> Predicate:
    async def check(state: SetupState, probe: StatusProbe) -> bool:
        return all(getattr(state, flag) for flag in flags)

    return check


def live_status(name: str) -> Predicate:
    async def check(state: SetupState, probe: StatusProbe) -> bool:
        return await probe(name)

    return check


def set_flags(*flags: str) -> Callable[[SetupState], None]:
    def mark(state: SetupState) -> None:
        for flag in flags:
            setattr(state, flag, True)

    return mark


def _no_flags(state: SetupState) -> None:
    pass


def addon_entry(name: str) -> PlanEntry:
    """Entry for a component with no checkpoint flag; installedness is asked live."""
    return PlanEntry(
        name=name,
        is_done=live_status(name),
        mark_done=_no_flags,
        upgradable=True,
    )


def default_plan() -> list[PlanEntry]:
    return [
        PlanEntry(
            name="openbao",
            is_done=flags_set("openbao_installed", "openbao_initialized"),
            mark_done=set_flags("openbao_installed", "openbao_initialized"),
        ),
        # Zones are created right after install and re-synced on every run.
        PlanEntry(
            name="dns",
            is_done=flags_set("dns_installed", "dns_zones_created"),
            mark_done=set_flags("dns_installed", "dns_zones_created"),
            sync_when_skipped=True,
            sync_after_install=True,
        ),
        PlanEntry(
            name="zot",
            is_done=flags_set("zot_installed"),
            mark_done=set_flags("zot_installed"),
        ),
        # Registry mirrors may change between runs; keep them in sync.
        PlanEntry(
            name="k3s",
            is_done=flags_set("k8s_installed"),
            mark_done=set_flags("k8s_installed"),
            sync_when_skipped=True,
        ),
    ] + [addon_entry(name) for name in ADDON_COMPONENTS]


def build_registry(config: StackConfig) -> Registry:
    """Register a shell-backed component for every catalogue entry and every
    component declared in ``config``."""
    registry = Registry()
    names = list(COMPONENT_DEPENDENCIES)
    names += [n for n in config.components if n not in COMPONENT_DEPENDENCIES]

    for name in names:
        settings = config.components.get(name)
        dependencies = COMPONENT_DEPENDENCIES.get(name, [])
        commands: dict[str, str] = {}
        if settings:
            commands = settings.commands
            if settings.depends_on is not None:
                dependencies = settings.depends_on
        registry.register(
            ShellComponent(name, dependencies, commands, config=config.component_config(name))
        )

    return registry


def requested_components(config: StackConfig) -> list[str]:
    if config.requested is not None:
        return list(config.requested)
    return BASE_COMPONENTS + ADDON_COMPONENTS


__all__ = [
    "BASE_COMPONENTS",
    "ADDON_COMPONENTS",
    "COMPONENT_DEPENDENCIES",
    "PlanEntry",
    "StatusProbe",
    "Predicate",
    "flags_set",
    "live_status",
    "set_flags",
    "addon_entry",
    "default_plan",
    "build_registry",
    "requested_components",
]
