"""Async command execution utilities."""

import asyncio
import logging
import os
from typing import Tuple

DEFAULT_TIMEOUT = 30
STATUS_TIMEOUT = 60
INSTALL_TIMEOUT = 1800

_logging = logging.getLogger(__name__)


async def run_command_async(
    command: str, timeout: float = DEFAULT_TIMEOUT, env: dict[str, str] | None = None
) -> Tuple[str, int]:
    """Run ``command`` through the shell and return ``(output, returncode)``.

    ``env`` is layered over the current environment. When the command fails
    without writing to stdout, its stderr is returned instead. Timeouts and
    spawn failures come back as return code 1 with a message, never raised.
    """
    _logging.debug(f"Running command: {command}")
    try:
        process = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env={**os.environ, **env} if env else None,
        )
    except OSError as e:
        _logging.error(f"Could not start command: {type(e).__name__}: {e} | Command: {command}")
        return f"Error: {e}", 1

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        _logging.error(f"Command timed out after {timeout} seconds: {command}")
        return f"Command timed out after {timeout} seconds", 1
    finally:
        transport = getattr(process, "_transport", None)
        if transport:
            transport.close()

    output = stdout.decode(errors="replace").strip()
    errors = stderr.decode(errors="replace").strip()
    returncode = process.returncode if process.returncode is not None else 1
    if errors:
        _logging.debug(f"stderr: {errors}")
    if returncode != 0 and not output:
        output = errors
    return output, returncode


__all__ = ["DEFAULT_TIMEOUT", "STATUS_TIMEOUT", "INSTALL_TIMEOUT", "run_command_async"]
