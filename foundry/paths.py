"""Configuration path helpers for foundry."""

import os
from pathlib import Path


def get_config_dir() -> Path:
    """Return the foundry config directory: ~/.foundry"""
    if "FOUNDRY_CONFIG_DIR" in os.environ:
        return Path(os.environ["FOUNDRY_CONFIG_DIR"])
    return Path.home() / ".foundry"


def get_config_path(explicit: str | None = None) -> Path:
    """Return path to the stack config file.

    Priority:
    1. explicit path (the --config option)
    2. FOUNDRY_CONFIG environment variable (if set)
    3. ~/.foundry/stack.yaml

    Args:
        explicit: Path given on the command line, if any

    Returns:
        Path to config file (it may not exist yet)
    """
    if explicit:
        return Path(explicit)
    if "FOUNDRY_CONFIG" in os.environ:
        return Path(os.environ["FOUNDRY_CONFIG"])
    return get_config_dir() / "stack.yaml"


def get_log_path() -> Path:
    return get_config_dir() / "logs" / "foundry.log"
