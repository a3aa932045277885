"""Scheduler policy base classes for collector selection."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Protocol, Sequence, TypeVar


class NamedAgent(Protocol):
    agent_id: str


AgentT = TypeVar("AgentT", bound=NamedAgent)


class SchedulerPolicy(ABC):
    """Abstract base class for collector selection policies.

    A policy receives the candidate agents for one project and must return the
    single agent that owns that project's collection. Policies must be
    deterministic: the same project against the same candidates has to land
    on the same agent, otherwise repeated updates scatter a project's state
    across collectors.
    """

    @abstractmethod
    def select_collector(self, agents: Sequence[AgentT], project_id: int) -> AgentT:
        """Pick the collector for *project_id*.

        Args:
            agents: Non-empty candidates, in a stable order.
            project_id: Identifier of the project being configured.

        Returns:
            The chosen agent.
        """


class SchedulerRegistry:
    """Runtime registry that maps string names to scheduler classes."""

    def __init__(self) -> None:
        self._registry: dict[str, type[SchedulerPolicy]] = {}

    def register(self, name: str, policy_cls: type[SchedulerPolicy]) -> None:
        if name in self._registry:
            raise ValueError(f"Policy '{name}' already registered")
        self._registry[name] = policy_cls

    def create(self, name: str, **kwargs) -> SchedulerPolicy:
        try:
            policy_cls = self._registry[name]
        except KeyError as exc:
            raise KeyError(f"Unknown policy '{name}'. Registered: {list(self._registry)}") from exc
        return policy_cls(**kwargs)

    def available(self) -> List[str]:
        return list(self._registry.keys())


registry = SchedulerRegistry()
