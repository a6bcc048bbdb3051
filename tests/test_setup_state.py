"""Tests for setup checkpoint state and its persistence."""

import logging
from pathlib import Path

import pytest
import yaml

from foundry.errors import StoreUnreadableError, StoreUnwritableError
from foundry.setup import (
    PHASE_FLAGS,
    Phase,
    SetupState,
    determine_next_step,
    installed_components,
    load_state,
    reset_state,
    save_state,
)


class TestDetermineNextStep:
    def test_fresh_state(self):
        assert determine_next_step(SetupState()) == Phase.NETWORK_PLAN

    def test_network_done(self):
        state = SetupState(network_planned=True, network_validated=True)

        assert determine_next_step(state) == Phase.OPENBAO_INSTALL

    def test_progression_one_flag_at_a_time(self):
        state = SetupState()
        for flag, phase in PHASE_FLAGS:
            assert determine_next_step(state) == phase
            setattr(state, flag, True)

        assert determine_next_step(state) == Phase.COMPLETE

    def test_earliest_unset_flag_wins(self):
        state = SetupState(network_planned=True, network_validated=True, dns_installed=True)

        assert determine_next_step(state) == Phase.OPENBAO_INSTALL

    def test_phase_str(self):
        assert str(Phase.OPENBAO_INITIALIZE) == "openbao_initialize"


class TestSetupState:
    def test_flag_names_in_phase_order(self):
        assert SetupState.flag_names() == [flag for flag, _ in PHASE_FLAGS]

    def test_is_complete_needs_terminal_flag(self):
        state = SetupState(**{name: True for name in SetupState.flag_names()})
        assert state.is_complete()

        state.stack_complete = False
        assert not state.is_complete()

    def test_reset(self):
        state = SetupState(network_planned=True, k8s_installed=True, stack_complete=True)
        state.reset()

        assert state == SetupState()
        assert determine_next_step(state) == Phase.NETWORK_PLAN

    def test_from_dict_ignores_unknown_and_missing_keys(self):
        state = SetupState.from_dict({"dns_installed": True, "bogus": True})

        assert state.dns_installed
        assert not state.network_planned

    def test_from_dict_rejects_non_boolean_flags(self):
        with pytest.raises(ValueError, match="network_planned"):
            SetupState.from_dict({"network_planned": "false", "network_validated": "no"})

    def test_from_dict_null_flag_is_false(self):
        assert SetupState.from_dict({"network_planned": None}) == SetupState()

    def test_gaps(self):
        assert SetupState().gaps() == []
        assert SetupState(network_planned=True, network_validated=True).gaps() == []

        state = SetupState(network_planned=True, zot_installed=True)
        assert state.gaps() == [
            "network_validated",
            "openbao_installed",
            "openbao_initialized",
            "dns_installed",
            "dns_zones_created",
        ]

    def test_copy_is_independent(self):
        state = SetupState(network_planned=True)
        clone = state.copy()
        clone.network_validated = True

        assert not state.network_validated


class TestPersistence:
    def test_missing_section_is_fresh_state(self, store_path: Path):
        assert load_state(store_path) == SetupState()

    def test_round_trip(self, store_path: Path):
        state = SetupState(network_planned=True, network_validated=True, openbao_installed=True)
        save_state(store_path, state)

        assert load_state(store_path) == state

    def test_unrelated_keys_preserved(self, store_path: Path):
        save_state(store_path, SetupState(network_planned=True))

        data = yaml.safe_load(store_path.read_text())
        assert data["cluster"]["name"] == "lab"
        assert data["hosts"][0]["hostname"] == "node1"
        assert data["setup_state"]["network_planned"] is True
        assert list(data["setup_state"]) == SetupState.flag_names()

    def test_installed_bookkeeping(self, store_path: Path):
        store_path.write_text(
            store_path.read_text() + "components:\n  openbao:\n    version: '2.0.0'\n"
        )

        save_state(store_path, SetupState(), installed=["openbao", "grafana"])

        data = yaml.safe_load(store_path.read_text())
        assert data["components"]["openbao"] == {"version": "2.0.0", "installed": True}
        assert data["components"]["grafana"] == {"installed": True}
        assert installed_components(store_path) == {"openbao", "grafana"}

    def test_no_bookkeeping_without_installed(self, store_path: Path):
        save_state(store_path, SetupState())

        assert "components" not in yaml.safe_load(store_path.read_text())
        assert installed_components(store_path) == set()

    def test_load_missing_file(self, temp_dir: Path):
        with pytest.raises(StoreUnreadableError, match="does not exist"):
            load_state(temp_dir / "missing.yaml")

    def test_save_missing_file(self, temp_dir: Path):
        path = temp_dir / "missing.yaml"

        with pytest.raises(StoreUnwritableError, match="does not exist"):
            save_state(path, SetupState())
        assert not path.exists()

    def test_load_malformed_file(self, temp_dir: Path):
        path = temp_dir / "broken.yaml"
        path.write_text("cluster: [unclosed\n")

        with pytest.raises(StoreUnreadableError, match="failed to parse"):
            load_state(path)

    def test_load_non_mapping_section(self, temp_dir: Path):
        path = temp_dir / "stack.yaml"
        path.write_text("setup_state: [1, 2]\n")

        with pytest.raises(StoreUnreadableError, match="not a mapping"):
            load_state(path)

    def test_load_quoted_flag(self, store_path: Path):
        store_path.write_text(
            store_path.read_text() + "setup_state:\n  network_planned: \"false\"\n"
        )

        with pytest.raises(StoreUnreadableError, match="flag 'network_planned' must be true or false"):
            load_state(store_path)

    def test_reset_state_clears_flags_and_bookkeeping(self, store_path: Path):
        store_path.write_text(
            store_path.read_text() + "components:\n  openbao:\n    install: deploy-openbao\n"
        )
        save_state(
            store_path,
            SetupState(network_planned=True, network_validated=True),
            installed=["openbao", "grafana"],
        )

        state = reset_state(store_path)

        assert state == SetupState()
        assert load_state(store_path) == SetupState()
        assert installed_components(store_path) == set()
        data = yaml.safe_load(store_path.read_text())
        assert data["components"] == {"openbao": {"install": "deploy-openbao"}}
        assert data["cluster"]["name"] == "lab"

    def test_reset_state_missing_file(self, temp_dir: Path):
        with pytest.raises(StoreUnwritableError):
            reset_state(temp_dir / "missing.yaml")

    def test_empty_file_is_fresh_state(self, temp_dir: Path):
        path = temp_dir / "stack.yaml"
        path.write_text("")

        assert load_state(path) == SetupState()

    def test_save_leaves_no_temp_files(self, store_path: Path):
        save_state(store_path, SetupState(network_planned=True))

        assert [p.name for p in store_path.parent.iterdir()] == [store_path.name]

    def test_gap_in_stored_state_is_logged(self, store_path: Path, caplog):
        save_state(store_path, SetupState(network_planned=True, zot_installed=True))

        with caplog.at_level(logging.WARNING, logger="foundry.setup.state"):
            state = load_state(store_path)

        assert state.zot_installed
        assert "openbao_installed" in caplog.text
