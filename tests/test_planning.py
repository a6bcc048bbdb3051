"""Tests for dry-run planning, readiness checks and signal handling."""

import asyncio
import os
import signal

import pytest

from foundry.config import validate_config
from foundry.errors import ConfigError
from foundry.setup import Phase, SetupState
from foundry.stack import (
    ADDON_COMPONENTS,
    hosts_check,
    network_check,
    plan_stack,
    render_plan,
    watch_signals,
)

from .conftest import ops


@pytest.mark.asyncio
async def test_plan_for_fresh_stack(make_orchestrator, calls):
    plan = await plan_stack(make_orchestrator(), SetupState())

    assert plan.next_step == Phase.NETWORK_PLAN
    assert plan.network_pending
    assert not plan.already_complete
    assert plan.actions("install")[:4] == ["openbao", "dns", "zot", "k3s"]
    assert ops(calls, "install") == []


@pytest.mark.asyncio
async def test_plan_after_base_install(make_orchestrator):
    state = SetupState(
        network_planned=True,
        network_validated=True,
        openbao_installed=True,
        openbao_initialized=True,
        dns_installed=True,
        dns_zones_created=True,
        zot_installed=True,
        k8s_installed=True,
    )

    plan = await plan_stack(make_orchestrator(), state)

    assert plan.next_step == Phase.COMPLETE
    assert not plan.network_pending
    assert plan.actions("skip") == ["openbao", "zot"]
    assert plan.actions("sync") == ["dns", "k3s"]
    assert plan.actions("install") == ADDON_COMPONENTS


@pytest.mark.asyncio
async def test_plan_upgrade(make_orchestrator, stack_registry):
    for name in ADDON_COMPONENTS:
        stack_registry.get(name).installed = True
    state = SetupState(**{name: True for name in SetupState.flag_names()})

    plan = await plan_stack(make_orchestrator(), state, upgrade=True)

    assert plan.actions("upgrade") == ADDON_COMPONENTS

    plan = await plan_stack(make_orchestrator(), state)

    assert plan.already_complete
    assert plan.steps == []


@pytest.mark.asyncio
async def test_render_plan(make_orchestrator):
    plan = await plan_stack(make_orchestrator(), SetupState(network_planned=True))
    rendered = render_plan(plan)

    assert "Stack Installation Plan" in rendered
    assert "Current checkpoint: network_validate" in rendered
    assert "network planned: yes" in rendered
    assert "Network planning and validation (pending)" in rendered
    assert "➕ openbao: install" in rendered


def test_render_plan_already_complete():
    from foundry.stack import Plan

    state = SetupState(**{name: True for name in SetupState.flag_names()})
    rendered = render_plan(Plan(next_step=Phase.COMPLETE, state=state, already_complete=True))

    assert "nothing to do" in rendered
    assert "Steps:" not in rendered


def make_config(**extra):
    data = {"cluster": {"name": "lab", "domain": "lab.io", "vip": "10.0.0.100"}}
    data.update(extra)
    return validate_config(data)


class TestReadiness:
    @pytest.mark.asyncio
    async def test_no_hosts(self):
        with pytest.raises(ConfigError, match="no hosts defined"):
            await hosts_check(make_config())()

    @pytest.mark.asyncio
    async def test_hosts_without_check_commands(self):
        config = make_config(hosts=[{"hostname": "node1", "address": "10.0.0.11"}])

        assert await hosts_check(config)()

    @pytest.mark.asyncio
    async def test_host_check_command_is_rendered(self, mocker):
        run = mocker.patch(
            "foundry.stack.readiness.run_command_async",
            new=mocker.AsyncMock(return_value=("", 0)),
        )
        config = make_config(
            hosts=[
                {
                    "hostname": "node1",
                    "address": "10.0.0.11",
                    "check_command": "ssh -p $port $user@$address true",
                }
            ]
        )

        assert await hosts_check(config)()
        assert run.await_args.args[0] == "ssh -p 22 root@10.0.0.11 true"

    @pytest.mark.asyncio
    async def test_failing_host(self, mocker):
        mocker.patch(
            "foundry.stack.readiness.run_command_async",
            new=mocker.AsyncMock(side_effect=[("", 0), ("connection refused", 255)]),
        )
        config = make_config(
            hosts=[
                {"hostname": "node1", "address": "a", "check_command": "check"},
                {"hostname": "node2", "address": "b", "check_command": "check"},
            ]
        )

        assert not await hosts_check(config)()

    @pytest.mark.asyncio
    async def test_network(self):
        assert await network_check(make_config(network={"gateway": "10.0.0.1"}))()
        assert not await network_check(make_config())()

        config = make_config(network={"gateway": "10.0.0.1"})
        config.cluster.vip = None
        assert not await network_check(config)()


class TestWatchSignals:
    @pytest.mark.asyncio
    async def test_signal_sets_event(self):
        with watch_signals(signals=(signal.SIGUSR1,)) as cancel:
            assert not cancel.is_set()
            os.kill(os.getpid(), signal.SIGUSR1)
            await asyncio.wait_for(cancel.wait(), timeout=2)

        assert cancel.is_set()

    @pytest.mark.asyncio
    async def test_uses_given_event(self):
        event = asyncio.Event()

        with watch_signals(event, signals=(signal.SIGUSR2,)) as cancel:
            assert cancel is event

    @pytest.mark.asyncio
    async def test_handlers_removed_on_exit(self):
        loop = asyncio.get_running_loop()

        with watch_signals(signals=(signal.SIGUSR2,)):
            pass

        assert not loop.remove_signal_handler(signal.SIGUSR2)
