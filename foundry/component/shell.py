"""Components whose operations are shell commands from the stack config."""

import logging
import re
from string import Template

from foundry.errors import ComponentError
from foundry.execution import INSTALL_TIMEOUT, STATUS_TIMEOUT, run_command_async

from .models import Component, ComponentConfig, ComponentStatus

_logging = logging.getLogger(__name__)


def _scalars(config: ComponentConfig) -> dict[str, str]:
    return {k: str(v) for k, v in config.items() if isinstance(v, (str, int, float, bool))}


def render_command(command: str, config: ComponentConfig) -> str:
    """Substitute ``$name`` / ``${name}`` placeholders from ``config``.

    Unknown placeholders are left untouched so shell variables survive.
    """
    return Template(command).safe_substitute(_scalars(config))


def command_env(config: ComponentConfig) -> dict[str, str]:
    """Scalar config values as environment variables (``cluster_name`` -> ``CLUSTER_NAME``)."""
    return {re.sub(r"\W", "_", k).upper(): v for k, v in _scalars(config).items()}


class ShellComponent(Component):
    """A component driven by configured commands.

    ``commands`` maps operation names (install, upgrade, status, uninstall,
    sync, reconcile) to shell commands. The status command exiting 0 means
    installed; its first output line is reported as the version.

    ``config`` is the bag used by ``status`` and ``uninstall``, which take
    none of their own; ``install`` and ``upgrade`` replace it.
    """

    def __init__(
        self,
        name: str,
        dependencies: list[str] | None = None,
        commands: dict[str, str] | None = None,
        timeout: int = INSTALL_TIMEOUT,
        config: ComponentConfig | None = None,
    ):
        self.name = name
        self.dependencies = list(dependencies or [])
        self.commands = dict(commands or {})
        self.timeout = timeout
        self.config: ComponentConfig = dict(config or {})

    async def _run(self, operation: str, config: ComponentConfig, required: bool) -> str:
        command = self.commands.get(operation)
        if not command:
            if required:
                raise ComponentError(self.name, f"no {operation} command configured")
            return ""

        rendered = render_command(command, config)
        _logging.info(f"{self.name}: running {operation}")
        output, returncode = await run_command_async(
            rendered, timeout=self.timeout, env=command_env(config)
        )
        if returncode != 0:
            raise ComponentError(
                self.name, f"{operation} command exited with {returncode}: {output}"
            )
        return output

    async def install(self, config: ComponentConfig) -> None:
        self.config = dict(config)
        await self._run("install", config, required=True)

    async def upgrade(self, config: ComponentConfig) -> None:
        self.config = dict(config)
        if "upgrade" in self.commands:
            await self._run("upgrade", config, required=True)
        else:
            # Installers are expected to be idempotent; re-running applies new config.
            await self._run("install", config, required=True)

    async def sync(self, config: ComponentConfig) -> None:
        await self._run("sync", config, required=False)

    async def reconcile(self, config: ComponentConfig) -> None:
        await self._run("reconcile", config, required=False)

    async def uninstall(self) -> None:
        await self._run("uninstall", self.config, required=True)

    async def status(self) -> ComponentStatus:
        command = self.commands.get("status")
        if not command:
            return ComponentStatus(installed=False, message="no status command configured")

        output, returncode = await run_command_async(
            render_command(command, self.config),
            timeout=STATUS_TIMEOUT,
            env=command_env(self.config),
        )
        if returncode != 0:
            return ComponentStatus(installed=False, message=output)

        lines = output.splitlines()
        version = lines[0].strip() if lines else ""
        return ComponentStatus(installed=True, healthy=True, version=version)


__all__ = ["ShellComponent", "render_command", "command_env"]
