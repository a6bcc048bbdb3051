"""Host and network readiness checks run once per installation."""

import logging
from string import Template
from typing import Awaitable, Callable

from foundry.config import HostConfig, StackConfig
from foundry.errors import ConfigError
from foundry.execution import run_command_async

ReadinessCheck = Callable[[], Awaitable[bool]]

_logging = logging.getLogger(__name__)


def _render_host_command(command: str, host: HostConfig) -> str:
    return Template(command).safe_substitute(
        hostname=host.hostname,
        address=host.address,
        user=host.user,
        port=str(host.port),
    )


def hosts_check(config: StackConfig) -> ReadinessCheck:
    """Every host is defined and its optional ``check_command`` succeeds."""

    async def check() -> bool:
        if not config.hosts:
            raise ConfigError("no hosts defined in configuration")

        ready = True
        for host in config.hosts:
            if not host.check_command:
                continue
            command = _render_host_command(host.check_command, host)
            output, returncode = await run_command_async(command)
            if returncode != 0:
                _logging.warning(f"Host {host.hostname} ({host.address}) is not ready: {output}")
                ready = False
        return ready

    return check


def network_check(config: StackConfig) -> ReadinessCheck:
    """The network is planned once a network section and a cluster VIP exist."""

    async def check() -> bool:
        return config.network is not None and bool(config.cluster.vip)

    return check


__all__ = ["ReadinessCheck", "hosts_check", "network_check"]
