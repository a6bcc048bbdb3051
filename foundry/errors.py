"""Exception types and error formatting for foundry.

Every failure the installer can surface derives from ``FoundryError`` so the
CLI can report it uniformly. The formatting helpers keep user-facing
messages consistent.

Error Style Guide:
- User-facing errors use 'Error: ' prefix
- Field errors use structured format: '<entity> field '<field>' <issue>'
- Use present tense: 'must be', 'is required'
- Include actionable hints where helpful
"""


class FoundryError(Exception):
    """Base class for all foundry errors."""


class ConfigError(FoundryError):
    """Raised when the stack configuration cannot be loaded or validated."""


class ComponentError(FoundryError):
    """Raised by a component when one of its operations fails."""

    def __init__(self, component: str, message: str):
        super().__init__(f"{component}: {message}")
        self.component = component


class ResolutionError(FoundryError):
    """Raised when an installation order cannot be produced."""


class UnknownComponentError(ResolutionError):
    def __init__(self, name: str, message: str | None = None):
        super().__init__(message or f"component '{name}' not found in registry")
        self.name = name


class DependencyCycleError(ResolutionError):
    def __init__(self, name: str):
        super().__init__(f"circular dependency detected involving component '{name}'")
        self.name = name


class StateStoreError(FoundryError):
    """Raised when setup state cannot be read from or written to its store."""

    def __init__(self, path, message: str):
        super().__init__(f"{message}: {path}")
        self.path = path


class StoreUnreadableError(StateStoreError):
    pass


class StoreUnwritableError(StateStoreError):
    pass


class PhaseError(FoundryError):
    """A phase or component failed; ``phase`` names it, ``__cause__`` holds the reason."""

    def __init__(self, phase: str, cause: BaseException | str):
        super().__init__(f"{phase} failed: {cause}")
        self.phase = phase


class InstallationCancelled(FoundryError):
    """The run was interrupted between phases; state was saved and it is safe to resume."""

    def __init__(self, next_step):
        super().__init__(f"installation cancelled before '{next_step}'")
        self.next_step = next_step


def format_error(message: str) -> str:
    """Format an error message with consistent prefix.

    Examples:
        >>> format_error("config file not found")
        'Error: config file not found'
    """
    return f"Error: {message}"


def format_field_error(entity: str, field: str, issue: str) -> str:
    """Format a field validation error with structured format.

    Examples:
        >>> format_field_error("Host 'node1'", "address", "is required")
        "Host 'node1' field 'address' is required"
    """
    return f"{entity} field '{field}' {issue}"


def format_suggestion(message: str, suggestion: str) -> str:
    """Format an error message with a helpful suggestion.

    Examples:
        >>> format_suggestion("stack config not found", "run 'foundry stack install' to create one")
        "Error: stack config not found. Hint: run 'foundry stack install' to create one"
    """
    return f"{format_error(message)}. Hint: {suggestion}"


__all__ = [
    "FoundryError",
    "ConfigError",
    "ComponentError",
    "ResolutionError",
    "UnknownComponentError",
    "DependencyCycleError",
    "StateStoreError",
    "StoreUnreadableError",
    "StoreUnwritableError",
    "PhaseError",
    "InstallationCancelled",
    "format_error",
    "format_field_error",
    "format_suggestion",
]
