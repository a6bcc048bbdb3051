"""Stack configuration loading and validation.

The stack config is a YAML document (``~/.foundry/stack.yaml`` by default).
The same file also carries the ``setup_state`` checkpoint section, which is
owned by :mod:`foundry.setup.state` and ignored here.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from foundry.errors import ConfigError, format_field_error

COMMAND_FIELDS = ("install", "upgrade", "status", "uninstall", "sync", "reconcile")


@dataclass
class HostConfig:
    """A remote machine the stack is installed onto."""
    hostname: str
    address: str
    user: str = "root"
    port: int = 22
    roles: list[str] = field(default_factory=list)
    check_command: str | None = None

    def __post_init__(self):
        if not self.hostname or not isinstance(self.hostname, str):
            raise ValueError("hostname must be a non-empty string")
        if not self.address or not isinstance(self.address, str):
            raise ValueError("address must be a non-empty string")
        if not isinstance(self.port, int) or not 0 < self.port < 65536:
            raise ValueError("port must be an integer between 1 and 65535")


@dataclass
class ComponentSettings:
    """Per-component settings: shell commands, desired version and values."""
    name: str
    commands: dict[str, str] = field(default_factory=dict)
    version: str | None = None
    values: dict[str, Any] = field(default_factory=dict)
    depends_on: list[str] | None = None

    def __post_init__(self):
        unknown = set(self.commands) - set(COMMAND_FIELDS)
        if unknown:
            raise ValueError(f"unknown command(s): {', '.join(sorted(unknown))}")


@dataclass
class ClusterConfig:
    name: str
    domain: str
    vip: str | None = None


@dataclass
class StackConfig:
    """Root configuration for a stack."""
    cluster: ClusterConfig
    hosts: list[HostConfig] = field(default_factory=list)
    network: dict[str, Any] | None = None
    components: dict[str, ComponentSettings] = field(default_factory=dict)
    requested: list[str] | None = None

    def hosts_with_role(self, role: str) -> list[HostConfig]:
        return [h for h in self.hosts if role in h.roles]

    def component_config(self, name: str) -> dict[str, Any]:
        """Build the configuration bag handed to a component's operations."""
        settings = self.components.get(name)
        bag: dict[str, Any] = {
            "cluster_name": self.cluster.name,
            "domain": self.cluster.domain,
            "vip": self.cluster.vip or "",
        }
        if settings:
            if settings.version:
                bag["version"] = settings.version
            bag.update(settings.values)
        return bag


def _require_str(data: dict, key: str, entity: str) -> str:
    if key not in data:
        raise ConfigError(format_field_error(entity, key, "is required"))
    value = data[key]
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(format_field_error(entity, key, "must be a non-empty string"))
    return value


def _optional_str(data: dict, key: str, entity: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ConfigError(format_field_error(entity, key, "must be a string or null"))
    return value


def _validate_hosts(raw: Any) -> list[HostConfig]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigError(f"hosts must be a list, got {type(raw).__name__}")

    hosts = []
    for i, item in enumerate(raw):
        entity = f"hosts[{i}]"
        if not isinstance(item, dict):
            raise ConfigError(f"{entity} must be a mapping, got {type(item).__name__}")
        roles = item.get("roles") or []
        if not isinstance(roles, list) or not all(isinstance(r, str) for r in roles):
            raise ConfigError(format_field_error(entity, "roles", "must be a list of strings"))
        try:
            hosts.append(
                HostConfig(
                    hostname=_require_str(item, "hostname", entity),
                    address=_require_str(item, "address", entity),
                    user=item.get("user") or "root",
                    port=item.get("port", 22),
                    roles=list(roles),
                    check_command=_optional_str(item, "check_command", entity),
                )
            )
        except ValueError as e:
            raise ConfigError(f"{entity}: {e}")
    return hosts


def _validate_components(raw: Any) -> dict[str, ComponentSettings]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"components must be a mapping, got {type(raw).__name__}")

    components = {}
    for name, item in raw.items():
        entity = f"Component '{name}'"
        item = item or {}
        if not isinstance(item, dict):
            raise ConfigError(f"{entity} must be a mapping, got {type(item).__name__}")

        commands = {}
        for key in COMMAND_FIELDS:
            value = _optional_str(item, key, entity)
            if value:
                commands[key] = value

        values = item.get("values") or {}
        if not isinstance(values, dict):
            raise ConfigError(format_field_error(entity, "values", "must be a mapping"))

        version = item.get("version")
        if version is not None:
            version = str(version)

        depends_on = item.get("depends_on")
        if depends_on is not None and (
            not isinstance(depends_on, list)
            or not all(isinstance(d, str) for d in depends_on)
        ):
            raise ConfigError(format_field_error(entity, "depends_on", "must be a list of strings"))

        components[name] = ComponentSettings(
            name=name,
            commands=commands,
            version=version,
            values=values,
            depends_on=depends_on,
        )
    return components


def validate_config(data: dict) -> StackConfig:
    """Validate and convert a raw mapping to a StackConfig.

    Args:
        data: Raw dict from yaml.safe_load()

    Returns:
        StackConfig with validated hosts and component settings

    Raises:
        ConfigError: If validation fails, naming the offending field
    """
    if not isinstance(data, dict):
        raise ConfigError(f"Config must be a YAML mapping, got {type(data).__name__}")

    cluster_data = data.get("cluster")
    if not isinstance(cluster_data, dict):
        raise ConfigError("Missing required section: cluster")
    cluster = ClusterConfig(
        name=_require_str(cluster_data, "name", "cluster"),
        domain=_require_str(cluster_data, "domain", "cluster"),
        vip=_optional_str(cluster_data, "vip", "cluster"),
    )

    network = data.get("network")
    if network is not None and not isinstance(network, dict):
        raise ConfigError(f"network must be a mapping, got {type(network).__name__}")

    requested = None
    stack_data = data.get("stack") or {}
    if not isinstance(stack_data, dict):
        raise ConfigError(f"stack must be a mapping, got {type(stack_data).__name__}")
    if "components" in stack_data:
        requested = stack_data["components"]
        if not isinstance(requested, list) or not all(isinstance(n, str) for n in requested):
            raise ConfigError(format_field_error("stack", "components", "must be a list of strings"))

    return StackConfig(
        cluster=cluster,
        hosts=_validate_hosts(data.get("hosts")),
        network=network,
        components=_validate_components(data.get("components")),
        requested=requested,
    )


def _format_syntax_error(path: Path, error: yaml.MarkedYAMLError, text: str) -> str:
    """Format a YAML syntax error with line, caret, and context."""
    mark = error.problem_mark
    if mark is None:
        return f"Config syntax error in {path}: {error}"

    lines = text.split("\n")
    parts = [
        f"Config syntax error in {path} at line {mark.line + 1}, "
        f"col {mark.column + 1}: {error.problem}"
    ]
    if 0 <= mark.line < len(lines):
        parts.append(lines[mark.line])
        parts.append(" " * mark.column + "^")
    return "\n".join(parts)


def read_config_file(path: Path) -> dict:
    """Read a stack config file into a raw mapping.

    Raises:
        ConfigError: If the file cannot be read or is not a YAML mapping
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}")
    except PermissionError:
        raise ConfigError(f"Permission denied reading config file: {path}")
    except UnicodeDecodeError:
        raise ConfigError(f"Config file is not valid UTF-8: {path}")

    try:
        data = yaml.safe_load(text)
    except yaml.MarkedYAMLError as e:
        raise ConfigError(_format_syntax_error(path, e, text)) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Config syntax error in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config must be a YAML mapping, got {type(data).__name__}")
    return data


def load_config(path: Path) -> StackConfig:
    return validate_config(read_config_file(path))


__all__ = [
    "COMMAND_FIELDS",
    "HostConfig",
    "ComponentSettings",
    "ClusterConfig",
    "StackConfig",
    "validate_config",
    "read_config_file",
    "load_config",
]
