"""Configuration delivery to collector agents.

Delivery has two phases. The configuration is always pushed; when the
project's collection is already started, a start command follows and the
caller waits, bounded by a deadline, for the agent's status reply. Broadcast
delivery (file-tail mode) only ever pushes.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Protocol

from .agents import AgentDisconnectedError
from .errors import DeliveryFailure
from .logging_utils import log_extra
from .models import AgentResponse, Assignment, ConfigArgs, LoggingConfigPayload, MessageType

logger = logging.getLogger("logcfg.master.delivery")


class CollectorAgent(Protocol):
    agent_id: str

    async def send_logging_config(self, project_id: int, payload: LoggingConfigPayload) -> str:
        ...

    async def send_logging_start(self, project_id: int) -> str:
        ...

    async def read(self, task_id: str) -> AgentResponse:
        ...

    def close_channel(self, task_id: str) -> None:
        ...


class AgentDirectory(Protocol):
    def get(self, agent_id: str) -> CollectorAgent | None:
        ...

    def all(self) -> list:
        ...


async def push_config(
    agent: CollectorAgent, project_id: int, args: ConfigArgs, report: str
) -> None:
    payload = LoggingConfigPayload.from_args(args, report)
    try:
        await agent.send_logging_config(project_id, payload)
    except AgentDisconnectedError as exc:
        raise DeliveryFailure(agent.agent_id, str(exc)) from exc


async def confirm_start(agent: CollectorAgent, project_id: int, timeout: float) -> bool:
    """Send a start command and wait up to *timeout* for a successful status."""

    extra = log_extra(project_id=project_id, agent_id=agent.agent_id)
    try:
        task_id = await agent.send_logging_start(project_id)
    except AgentDisconnectedError as exc:
        logger.error(
            "send logging start of project %d to collector [%s]: %s",
            project_id,
            agent.agent_id,
            exc,
            extra=extra,
        )
        return False
    try:
        response = await asyncio.wait_for(agent.read(task_id), timeout=timeout)
    except asyncio.TimeoutError:
        logger.error(
            "wait logging start status of project %d from collector [%s]: timed out after %.1fs",
            project_id,
            agent.agent_id,
            timeout,
            extra=extra,
        )
        return False
    except AgentDisconnectedError as exc:
        logger.error(
            "wait logging start status of project %d from collector [%s]: %s",
            project_id,
            agent.agent_id,
            exc,
            extra=extra,
        )
        return False
    finally:
        agent.close_channel(task_id)

    if response.type == MessageType.ERROR:
        logger.error(
            "get logging start status of project %d from collector [%s]: agent error: %s",
            project_id,
            agent.agent_id,
            response.message,
            extra=extra,
        )
        return False
    if response.type != MessageType.LOGGING_STATUS:
        logger.error(
            "get logging start status of project %d from collector [%s]: unexpected response type %s",
            project_id,
            agent.agent_id,
            response.type,
            extra=extra,
        )
        return False
    if not response.ok:
        logger.error(
            "get logging start status of project %d from collector [%s]: not started: %s",
            project_id,
            agent.agent_id,
            response.message or "no detail",
            extra=extra,
        )
        return False
    return True


async def deliver(
    agent: CollectorAgent, assignment: Assignment, report: str, timeout: float
) -> bool:
    """Push *assignment* to *agent*, confirming the start if it is running.

    Raises :class:`DeliveryFailure` when the push fails. Returns whether the
    start phase was acknowledged (True when no start phase was needed).
    """

    await push_config(agent, assignment.id, assignment.args, report)
    if not assignment.started:
        return True
    return await confirm_start(agent, assignment.id, timeout)


async def broadcast(
    agents: Iterable[CollectorAgent], project_id: int, args: ConfigArgs, report: str
) -> None:
    for agent in agents:
        try:
            await push_config(agent, project_id, args, report)
        except DeliveryFailure as exc:
            logger.error(
                "broadcast file logging config of project %d to %s: %s",
                project_id,
                agent.agent_id,
                exc,
                extra=log_extra(project_id=project_id, agent_id=agent.agent_id),
            )
            continue


async def resend(
    assignment: Assignment, pool: AgentDirectory, report: str, timeout: float
) -> None:
    """Push a stored assignment again without re-selecting its collector."""

    if assignment.is_broadcast:
        await broadcast(pool.all(), assignment.id, assignment.args, report)
        return

    agent = pool.get(assignment.cid)
    if agent is None:
        logger.warning(
            "Collector [%s] of project %d is not connected, skipping resend",
            assignment.cid,
            assignment.id,
            extra=log_extra(project_id=assignment.id, agent_id=assignment.cid),
        )
        return
    try:
        await deliver(agent, assignment, report, timeout)
    except DeliveryFailure as exc:
        logger.error(
            "send logging config of project %d to collector [%s]: %s",
            assignment.id,
            assignment.cid,
            exc,
            extra=log_extra(project_id=assignment.id, agent_id=assignment.cid),
        )
