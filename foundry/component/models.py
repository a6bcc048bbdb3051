"""Component interface and status model."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Sequence

from packaging import version as pkg_version

ComponentConfig = dict[str, Any]


@dataclass
class ComponentStatus:
    installed: bool
    healthy: bool = False
    version: str = ""
    message: str = ""

    @property
    def status_icon(self) -> str:
        if not self.installed:
            return "✗"
        if not self.healthy:
            return "⚠"
        return "✓"

    def is_version_satisfied(self, wanted: str | None) -> bool:
        """Whether the installed version is at least ``wanted``.

        Versions that do not parse are treated as satisfied; only a clear
        downgrade relative to the configured version counts as drift.
        """
        if not wanted or not self.version:
            return True
        try:
            return pkg_version.parse(self.version.lstrip("v")) >= pkg_version.parse(
                wanted.lstrip("v")
            )
        except pkg_version.InvalidVersion:
            return True


class Component(ABC):
    """A named, installable unit of the stack.

    Subclasses set ``name`` and ``dependencies``. Dependencies are names of
    other components, looked up in a registry when an order is resolved.
    """

    name: str = ""
    dependencies: Sequence[str] = ()

    @abstractmethod
    async def install(self, config: ComponentConfig) -> None:
        ...

    @abstractmethod
    async def upgrade(self, config: ComponentConfig) -> None:
        ...

    @abstractmethod
    async def status(self) -> ComponentStatus:
        ...

    @abstractmethod
    async def uninstall(self) -> None:
        ...

    async def sync(self, config: ComponentConfig) -> None:
        """Re-apply configuration derived from ``config`` to an installed component."""

    async def reconcile(self, config: ComponentConfig) -> None:
        """Optional post-install convenience work; failures are not fatal."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r} deps={self.dependencies!r}>"


__all__ = [
    "ComponentConfig",
    "ComponentStatus",
    "Component",
]
