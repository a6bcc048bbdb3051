"""Dry-run planning and rendering."""

from dataclasses import dataclass, field

from foundry.setup import Phase, SetupState, determine_next_step

from .orchestrator import StackOrchestrator


@dataclass
class PlanStep:
    component: str
    action: str
    reason: str


@dataclass
class Plan:
    next_step: Phase
    state: SetupState
    steps: list[PlanStep] = field(default_factory=list)
    already_complete: bool = False
    network_pending: bool = False

    def actions(self, action: str) -> list[str]:
        return [s.component for s in self.steps if s.action == action]


async def plan_stack(
    orchestrator: StackOrchestrator, state: SetupState, upgrade: bool = False
) -> Plan:
    """Work out what a run would do without calling any installer."""
    entries = orchestrator.resolve_entries()
    plan = Plan(
        next_step=determine_next_step(state),
        state=state,
        network_pending=not (state.network_planned and state.network_validated),
    )

    if not upgrade and await orchestrator.is_installed(state, entries):
        plan.already_complete = True
        return plan

    for entry in entries:
        done = await entry.is_done(state, orchestrator.probe)
        if not done:
            plan.steps.append(PlanStep(entry.name, "install", "not installed"))
        elif upgrade and entry.upgradable:
            plan.steps.append(PlanStep(entry.name, "upgrade", "upgrade requested"))
        elif entry.sync_when_skipped:
            plan.steps.append(PlanStep(entry.name, "sync", "installed; configuration re-synced"))
        else:
            plan.steps.append(PlanStep(entry.name, "skip", "already installed"))

    return plan


def render_plan(plan: Plan) -> str:
    lines = ["Stack Installation Plan", ""]
    lines.append(f"Current checkpoint: {plan.next_step}")
    lines.append("")

    if plan.already_complete:
        lines.append("✓ Stack is already complete; nothing to do.")
        return "\n".join(lines)

    lines.append("Current State:")
    for name, value in plan.state.to_dict().items():
        lines.append(f"  {name.replace('_', ' ')}: {'yes' if value else 'no'}")
    lines.append("")

    lines.append("Steps:")
    lines.append("  1. Host configuration (validate hosts are reachable)")
    network = "pending" if plan.network_pending else "done"
    lines.append(f"  2. Network planning and validation ({network})")
    lines.append("  3. Components:")
    icons = {"install": "➕", "upgrade": "🔄", "sync": "🔁", "skip": "✓"}
    for i, step in enumerate(plan.steps, 1):
        lines.append(f"     {i:>2}. {icons[step.action]} {step.component}: {step.action} ({step.reason})")
    lines.append("  4. Final validation")

    return "\n".join(lines)


__all__ = ["PlanStep", "Plan", "plan_stack", "render_plan"]
