"""foundry: resumable installation of an infrastructure stack."""

import logging
from pathlib import Path

from foundry.config import ConfigError, StackConfig, load_config
from foundry.errors import (
    FoundryError,
    InstallationCancelled,
    PhaseError,
    format_error,
    format_suggestion,
)
from foundry.execution import INSTALL_TIMEOUT, run_command_async

__version__ = "0.1.0"

_debug_enabled = False
_HANDLER_MARK = "_foundry_handler"


def set_debug(enabled: bool):
    """Enable or disable debug mode globally."""
    global _debug_enabled
    _debug_enabled = enabled


def is_debug() -> bool:
    """Check if debug mode is enabled."""
    return _debug_enabled


def setup_logging(debug: bool = False, log_file: Path | None = None) -> None:
    """Configure the root logger for CLI use.

    Console output goes to stderr: DEBUG with ``debug``, WARNING otherwise.
    With ``log_file`` every INFO record is also appended there. Calling it
    again replaces the handlers installed by a previous call.
    """
    set_debug(debug)
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            root.removeHandler(handler)
            handler.close()

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if debug else logging.WARNING)
    console.setFormatter(fmt)
    setattr(console, _HANDLER_MARK, True)
    root.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(fmt)
        setattr(file_handler, _HANDLER_MARK, True)
        root.addHandler(file_handler)

    root.setLevel(logging.DEBUG if debug else logging.INFO)


__all__ = [
    "__version__",
    "ConfigError",
    "FoundryError",
    "InstallationCancelled",
    "PhaseError",
    "StackConfig",
    "INSTALL_TIMEOUT",
    "format_error",
    "format_suggestion",
    "is_debug",
    "load_config",
    "run_command_async",
    "set_debug",
    "setup_logging",
]
