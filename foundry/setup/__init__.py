"""Setup checkpoint state."""

from .state import (
    PHASE_FLAGS,
    Phase,
    SetupState,
    determine_next_step,
    installed_components,
    load_state,
    reset_state,
    save_state,
)

__all__ = [
    "Phase",
    "PHASE_FLAGS",
    "SetupState",
    "determine_next_step",
    "load_state",
    "save_state",
    "reset_state",
    "installed_components",
]
