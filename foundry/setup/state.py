"""Setup checkpoint state and its persistence in the stack config file.

Progress through a stack installation is a fixed sequence of phases, each
tracked by one boolean flag. The flags live in the ``setup_state`` section
of the stack config file next to unrelated configuration:

    setup_state:
      network_planned: true
      network_validated: true
      openbao_installed: false
      ...

:func:`determine_next_step` is the only place that decides what comes next:
the earliest flag that is still false.
"""

import logging
import os
import tempfile
from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Iterable

import yaml

from foundry.errors import StoreUnreadableError, StoreUnwritableError

STATE_SECTION = "setup_state"
COMPONENTS_SECTION = "components"

_logging = logging.getLogger(__name__)


class Phase(Enum):
    NETWORK_PLAN = "network_plan"
    NETWORK_VALIDATE = "network_validate"
    OPENBAO_INSTALL = "openbao_install"
    OPENBAO_INITIALIZE = "openbao_initialize"
    DNS_INSTALL = "dns_install"
    DNS_ZONES_CREATE = "dns_zones_create"
    ZOT_INSTALL = "zot_install"
    K8S_INSTALL = "k8s_install"
    COMPLETE = "complete"

    def __str__(self) -> str:
        return self.value


@dataclass
class SetupState:
    # Field order is the phase order.
    network_planned: bool = False
    network_validated: bool = False
    openbao_installed: bool = False
    openbao_initialized: bool = False
    dns_installed: bool = False
    dns_zones_created: bool = False
    zot_installed: bool = False
    k8s_installed: bool = False
    stack_complete: bool = False

    @classmethod
    def flag_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_dict(cls, data: dict) -> "SetupState":
        """Build a state from a mapping; missing or unknown keys are ignored.

        Raises:
            ValueError: a flag is neither a boolean nor null
        """
        flags = {}
        for name in cls.flag_names():
            value = data.get(name)
            if value is None:
                value = False
            elif not isinstance(value, bool):
                raise ValueError(f"flag '{name}' must be true or false, got {value!r}")
            flags[name] = value
        return cls(**flags)

    def to_dict(self) -> dict[str, bool]:
        return {name: getattr(self, name) for name in self.flag_names()}

    def is_complete(self) -> bool:
        return all(self.to_dict().values())

    def reset(self) -> None:
        for name in self.flag_names():
            setattr(self, name, False)

    def gaps(self) -> list[str]:
        """Flags that are false although a later flag is true.

        Normal runs only ever produce a true prefix; a gap means the state
        was edited by hand and the skipped phase will not run again.
        """
        values = self.to_dict()
        names = self.flag_names()
        last_true = max((i for i, n in enumerate(names) if values[n]), default=-1)
        return [n for n in names[:last_true] if not values[n]]

    def copy(self) -> "SetupState":
        return SetupState(**self.to_dict())


PHASE_FLAGS: list[tuple[str, Phase]] = [
    ("network_planned", Phase.NETWORK_PLAN),
    ("network_validated", Phase.NETWORK_VALIDATE),
    ("openbao_installed", Phase.OPENBAO_INSTALL),
    ("openbao_initialized", Phase.OPENBAO_INITIALIZE),
    ("dns_installed", Phase.DNS_INSTALL),
    ("dns_zones_created", Phase.DNS_ZONES_CREATE),
    ("zot_installed", Phase.ZOT_INSTALL),
    ("k8s_installed", Phase.K8S_INSTALL),
    ("stack_complete", Phase.COMPLETE),
]


def determine_next_step(state: SetupState) -> Phase:
    """Return the phase of the earliest unset flag, or COMPLETE."""
    for flag, phase in PHASE_FLAGS:
        if not getattr(state, flag):
            return phase
    return Phase.COMPLETE


def _read_document(path: Path, error_cls) -> dict:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        raise error_cls(path, "stack config file does not exist")
    except OSError as e:
        raise error_cls(path, f"failed to read stack config file ({e.strerror})") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise error_cls(path, f"failed to parse stack config file ({e})") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise error_cls(path, "stack config file is not a YAML mapping")
    return data


def load_state(path: Path) -> SetupState:
    """Load setup state from the stack config file at ``path``.

    A file without a ``setup_state`` section yields an all-false state.

    Raises:
        StoreUnreadableError: the file is missing, unreadable or malformed
    """
    data = _read_document(path, StoreUnreadableError)
    section = data.get(STATE_SECTION)
    if section is None:
        return SetupState()
    if not isinstance(section, dict):
        raise StoreUnreadableError(path, f"'{STATE_SECTION}' is not a mapping")

    try:
        state = SetupState.from_dict(section)
    except ValueError as e:
        raise StoreUnreadableError(path, f"invalid '{STATE_SECTION}': {e}") from e

    gaps = state.gaps()
    if gaps:
        _logging.warning(
            f"Setup state in {path} has later phases marked done while "
            f"{', '.join(gaps)} are not; those phases will be skipped"
        )
    return state


def save_state(path: Path, state: SetupState, installed: Iterable[str] = ()) -> None:
    """Merge ``state`` into the stack config file at ``path``.

    Unrelated keys are preserved. Components named in ``installed`` get
    ``components.<name>.installed: true`` bookkeeping. The file must already
    exist; the state never creates its own container.

    Raises:
        StoreUnwritableError: the file is missing, malformed or not writable
    """
    path = Path(path)
    data = _read_document(path, StoreUnwritableError)
    data[STATE_SECTION] = state.to_dict()

    names = list(installed)
    if names:
        components = data.get(COMPONENTS_SECTION)
        if not isinstance(components, dict):
            components = {}
        for name in names:
            entry = components.get(name)
            if not isinstance(entry, dict):
                entry = {}
            entry["installed"] = True
            components[name] = entry
        data[COMPONENTS_SECTION] = components

    _write_document(path, data)


def reset_state(path: Path) -> SetupState:
    """Clear every flag and all ``installed`` bookkeeping in one write.

    Other per-component settings are kept; entries left empty are dropped.

    Raises:
        StoreUnwritableError: the file is missing, malformed or not writable
    """
    path = Path(path)
    data = _read_document(path, StoreUnwritableError)
    state = SetupState()
    data[STATE_SECTION] = state.to_dict()

    components = data.get(COMPONENTS_SECTION)
    if isinstance(components, dict):
        for name, entry in list(components.items()):
            if isinstance(entry, dict) and "installed" in entry:
                del entry["installed"]
                if not entry:
                    del components[name]

    _write_document(path, data)
    return state


def _write_document(path: Path, data: dict) -> None:
    output = yaml.safe_dump(data, default_flow_style=False, sort_keys=False)

    # Write beside the target and swap it in so a crash never truncates the file.
    tmp_name = None
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(output)
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as e:
        raise StoreUnwritableError(path, f"failed to write stack config file ({e.strerror})") from e
    finally:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)


def installed_components(path: Path) -> set[str]:
    """Names carrying ``installed: true`` bookkeeping in the stack config file."""
    data = _read_document(path, StoreUnreadableError)
    components = data.get(COMPONENTS_SECTION)
    if not isinstance(components, dict):
        return set()
    return {
        name
        for name, entry in components.items()
        if isinstance(entry, dict) and entry.get("installed") is True
    }


__all__ = [
    "STATE_SECTION",
    "Phase",
    "PHASE_FLAGS",
    "SetupState",
    "determine_next_step",
    "load_state",
    "save_state",
    "reset_state",
    "installed_components",
]
