"""Core controller orchestration logic."""
from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Mapping, Optional, Set

from .agents import AgentDisconnectedError, AgentPool, AgentSession
from .config import MasterConfig
from .delivery import broadcast, confirm_start, deliver, resend
from .errors import AssignmentNotFound, DeliveryFailure, NoCollectorAvailable, PersistenceFailure
from .logging_utils import configure_logging, log_extra
from .models import AgentHeartbeat, AgentMessage, AgentResponse, Assignment, parse_config_request
from .scheduler import SchedulerPolicy, registry as scheduler_registry, select_collector
from .store import AssignmentStore, build_store


class LoggingController:
    """Routes per-project logging configurations to collector agents.

    The project -> assignment index is guarded by one lock that is only held
    for whole-record reads and replacements, never across agent round trips.
    """

    def __init__(
        self,
        config: MasterConfig,
        store: AssignmentStore | None = None,
        pool: AgentPool | None = None,
    ) -> None:
        self.config = config
        self.logger = configure_logging(
            "logcfg.master",
            level=config.log_level,
            log_file=config.log_file,
            json_format=config.log_format == "json",
        )
        self.scheduler: SchedulerPolicy = scheduler_registry.create(config.scheduler)
        self.pool = pool or AgentPool(config.agent_heartbeat_timeout)
        self.store: AssignmentStore = store or build_store(config)
        self._assignments: Dict[int, Assignment] = {}
        self._lock = asyncio.Lock()
        self._background: Set[asyncio.Task[None]] = set()

    @property
    def report(self) -> str:
        return self.config.logging_report

    async def _lookup(self, project_id: int) -> Assignment:
        async with self._lock:
            assignment = self._assignments.get(project_id)
        if assignment is None:
            raise AssignmentNotFound(project_id)
        return assignment

    async def _commit(self, assignment: Assignment) -> None:
        try:
            await self.store.save(assignment)
        except Exception as exc:
            self.logger.error(
                "Saving logging config of project %d failed: %s",
                assignment.id,
                exc,
                extra=log_extra(project_id=assignment.id),
            )
            raise PersistenceFailure(assignment.id, str(exc)) from exc
        async with self._lock:
            self._assignments[assignment.id] = assignment

    async def _distribute(self, assignment: Assignment) -> str:
        """Deliver *assignment* and return the collector ID it landed on."""

        if assignment.is_broadcast:
            await broadcast(self.pool.all(), assignment.id, assignment.args, self.report)
            return ""

        agent = select_collector(
            self.pool.prefix,
            assignment.args.source.namespace,
            assignment.id,
            self.scheduler,
        )
        await deliver(agent, assignment, self.report, self.config.ack_timeout)
        return agent.agent_id

    async def configure(self, raw: Mapping[str, Any]) -> Assignment:
        project_id, args = parse_config_request(raw)
        async with self._lock:
            previous = self._assignments.get(project_id)
        assignment = Assignment(
            id=project_id,
            args=args,
            started=previous.started if previous else False,
        )
        try:
            assignment.cid = await self._distribute(assignment)
        except DeliveryFailure as exc:
            self.logger.error(
                "Configuring logging of project %d failed: %s",
                project_id,
                exc,
                extra=log_extra(project_id=project_id, agent_id=exc.agent_id),
            )
            raise
        await self._commit(assignment)
        self.logger.info(
            "Logging of project %d configured (%s) on %s",
            project_id,
            args.mode,
            assignment.cid or "all collectors",
            extra=log_extra(project_id=project_id, agent_id=assignment.cid),
        )
        return assignment

    async def start_logging(self, project_id: int) -> Assignment:
        assignment = await self._lookup(project_id)
        if assignment.is_broadcast:
            results = await asyncio.gather(
                *(
                    confirm_start(agent, project_id, self.config.ack_timeout)
                    for agent in self.pool.all()
                )
            )
            self.logger.info(
                "Logging start of project %d acknowledged by %d/%d collectors",
                project_id,
                sum(results),
                len(results),
            )
        else:
            agent = self.pool.get(assignment.cid)
            if agent is None:
                raise NoCollectorAvailable(f"collector {assignment.cid} is not connected")
            if not await confirm_start(agent, project_id, self.config.ack_timeout):
                raise DeliveryFailure(agent.agent_id, "logging start was not acknowledged")
        started = assignment.model_copy(update={"started": True})
        await self._commit(started)
        return started

    async def stop_logging(self, project_id: int) -> Assignment:
        assignment = await self._lookup(project_id)
        if assignment.is_broadcast:
            targets: List[AgentSession] = self.pool.all()
        else:
            agent = self.pool.get(assignment.cid)
            targets = [agent] if agent is not None else []
        for agent in targets:
            try:
                await agent.send_logging_stop(project_id)
            except AgentDisconnectedError as exc:
                self.logger.error(
                    "send logging stop of project %d to collector [%s]: %s",
                    project_id,
                    agent.agent_id,
                    exc,
                )
        stopped = assignment.model_copy(update={"started": False})
        await self._commit(stopped)
        return stopped

    async def remove(self, project_id: int) -> None:
        await self._lookup(project_id)
        await self.store.delete(project_id)
        async with self._lock:
            self._assignments.pop(project_id, None)
        self.logger.info("Logging config of project %d removed", project_id)

    async def get_assignment(self, project_id: int) -> Optional[Assignment]:
        async with self._lock:
            return self._assignments.get(project_id)

    async def list_assignments(self) -> List[Assignment]:
        async with self._lock:
            return sorted(self._assignments.values(), key=lambda a: a.id)

    async def restore(self) -> int:
        """Reload stored assignments and push each of them again."""

        assignments = await self.store.load_all()
        async with self._lock:
            for assignment in assignments:
                self._assignments[assignment.id] = assignment
        for assignment in assignments:
            await resend(assignment, self.pool, self.report, self.config.ack_timeout)
        self.logger.info("Restored %d logging configs", len(assignments))
        return len(assignments)

    async def _resend_to(self, agent_id: str) -> None:
        async with self._lock:
            assignments = [
                assignment
                for assignment in self._assignments.values()
                if assignment.is_broadcast or assignment.cid == agent_id
            ]
        agent = self.pool.get(agent_id)
        if agent is None:
            return
        for assignment in assignments:
            if assignment.is_broadcast:
                await broadcast([agent], assignment.id, assignment.args, self.report)
            else:
                await resend(assignment, self.pool, self.report, self.config.ack_timeout)

    async def agent_heartbeat(self, heartbeat: AgentHeartbeat) -> None:
        _, connected = self.pool.touch(heartbeat.agent_id)
        if not connected:
            return
        self.logger.info("Collector [%s] connected", heartbeat.agent_id)
        task = asyncio.create_task(self._resend_to(heartbeat.agent_id))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def next_message(self, agent_id: str, timeout: float = 1.0) -> Optional[AgentMessage]:
        session = self.pool.get(agent_id)
        if session is None:
            return None
        session.touch()
        return await session.next_message(timeout)

    async def report_response(self, response: AgentResponse) -> None:
        session = self.pool.get(response.agent_id)
        if session is None:
            self.logger.warning("Received response from unknown collector %s", response.agent_id)
            return
        if not session.deliver_response(response):
            self.logger.warning(
                "Dropping response for task %s from %s: nobody is waiting",
                response.task_id,
                response.agent_id,
            )

    async def wait_background(self) -> None:
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def close(self) -> None:
        for task in list(self._background):
            task.cancel()
        await self.wait_background()
        await self.store.close()
