"""Project-modulo scheduler implementation."""
from __future__ import annotations

from typing import Sequence

from .base import AgentT, SchedulerPolicy, registry


class ProjectModuloPolicy(SchedulerPolicy):
    """Map a project onto ``agents[project_id % len(agents)]`` by agent ID order."""

    def select_collector(self, agents: Sequence[AgentT], project_id: int) -> AgentT:
        ordered = sorted(agents, key=lambda agent: agent.agent_id)
        if not ordered:
            raise ValueError("cannot select a collector from an empty agent set")
        return ordered[project_id % len(ordered)]


def register() -> None:
    registry.register("project_modulo", ProjectModuloPolicy)


register()
