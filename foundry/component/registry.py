"""Lookup table of installable components."""

import logging
from typing import Iterator

from .models import Component

_logging = logging.getLogger(__name__)


class Registry:
    """Name to component mapping.

    Registries are plain objects passed to whatever needs them; build one at
    the entry point and hand it to the resolver and the orchestrator. Tests
    build their own.
    """

    def __init__(self, components: list[Component] | None = None):
        self._components: dict[str, Component] = {}
        for component in components or []:
            self.register(component)

    def register(self, component: Component) -> None:
        """Add ``component`` under its name, replacing any previous entry."""
        if component.name in self._components:
            _logging.debug(f"Replacing registered component '{component.name}'")
        self._components[component.name] = component

    def unregister(self, name: str) -> None:
        self._components.pop(name, None)

    def get(self, name: str) -> Component | None:
        return self._components.get(name)

    def has(self, name: str) -> bool:
        return name in self._components

    def names(self) -> list[str]:
        return list(self._components)

    def all(self) -> list[Component]:
        return list(self._components.values())

    def __contains__(self, name: object) -> bool:
        return name in self._components

    def __len__(self) -> int:
        return len(self._components)

    def __iter__(self) -> Iterator[Component]:
        return iter(list(self._components.values()))


__all__ = ["Registry"]
