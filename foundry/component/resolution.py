"""Dependency-ordered resolution of components."""

from foundry.errors import DependencyCycleError, UnknownComponentError

from .registry import Registry


def resolve_installation_order(registry: Registry, requested: list[str]) -> list[str]:
    """Return ``requested`` plus their transitive dependencies in install order.

    Every component appears after all of its dependencies. The walk is depth
    first over ``requested`` in the order given, placing dependencies (in
    their declared order) before the component itself, so components with no
    dependency between them keep the caller's order.

    Raises:
        UnknownComponentError: a requested or required name is not registered
        DependencyCycleError: a name still being resolved is reached again
    """
    order: list[str] = []
    placed: set[str] = set()
    in_progress: set[str] = set()

    def visit(name: str, required_by: str | None) -> None:
        if name in placed:
            return
        if name in in_progress:
            raise DependencyCycleError(name)

        component = registry.get(name)
        if component is None:
            if required_by:
                raise UnknownComponentError(
                    name,
                    f"component '{name}' required by '{required_by}' not found in registry",
                )
            raise UnknownComponentError(name)

        in_progress.add(name)
        for dep in component.dependencies:
            visit(dep, name)
        in_progress.discard(name)

        placed.add(name)
        order.append(name)

    for name in requested:
        visit(name, None)

    return order


def validate_dependencies(registry: Registry, requested: list[str]) -> None:
    """Check that every transitive dependency of ``requested`` is registered.

    Unlike :func:`resolve_installation_order`, which stops at the first
    problem, this collects every missing name so they can be reported at once.

    Raises:
        UnknownComponentError: listing each component and its missing deps
    """
    missing: dict[str, list[str]] = {}
    seen: set[str] = set()
    stack = list(requested)

    while stack:
        name = stack.pop()
        if name in seen:
            continue
        seen.add(name)

        component = registry.get(name)
        if component is None:
            raise UnknownComponentError(name)

        for dep in component.dependencies:
            if registry.has(dep):
                stack.append(dep)
            else:
                missing.setdefault(name, []).append(dep)

    if missing:
        lines = ["missing dependencies:"]
        for name in sorted(missing):
            lines.append(f"  {name} requires: {', '.join(missing[name])}")
        first = next(iter(sorted(missing)))
        raise UnknownComponentError(missing[first][0], "\n".join(lines))


def has_circular_dependencies(registry: Registry) -> bool:
    """Whether any dependency chain among registered components loops.

    Unknown dependencies are not cycles and propagate as errors.
    """
    try:
        resolve_installation_order(registry, registry.names())
    except DependencyCycleError:
        return True
    return False


__all__ = [
    "resolve_installation_order",
    "validate_dependencies",
    "has_circular_dependencies",
]
