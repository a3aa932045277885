"""Collector selection for clustered (k8s) logging configurations."""
from __future__ import annotations

import logging
from typing import Callable, List, Sequence

from ..errors import NoCollectorAvailable
from .base import AgentT, SchedulerPolicy

GENERIC_K8S_PREFIX = "k8s-"

logger = logging.getLogger("logcfg.master.scheduler")


def namespace_prefix(namespace: str) -> str:
    return f"{namespace}-{GENERIC_K8S_PREFIX}"


def select_collector(
    query: Callable[[str], Sequence[AgentT]],
    namespace: str,
    project_id: int,
    policy: SchedulerPolicy,
) -> AgentT:
    """Choose the collector for *project_id* in *namespace*.

    Agents dedicated to the namespace (``<namespace>-k8s-``) are preferred;
    the generic ``k8s-`` group is the fallback. Raises
    :class:`NoCollectorAvailable` when both groups are empty.
    """

    candidates: List[AgentT] = list(query(namespace_prefix(namespace)))
    if not candidates:
        logger.warning(
            "No collector in namespace group %s, falling back to %s",
            namespace_prefix(namespace),
            GENERIC_K8S_PREFIX,
        )
        candidates = list(query(GENERIC_K8S_PREFIX))
    if not candidates:
        raise NoCollectorAvailable()
    return policy.select_collector(candidates, project_id)
