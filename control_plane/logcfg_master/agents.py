"""In-process registry of connected collector agents.

Agents poll the controller for outbound messages and post their responses
back; each :class:`AgentSession` holds the outbound queue for one agent and
the response channels of the tasks that are waiting on it.
"""
from __future__ import annotations

import asyncio
import time
import uuid
from typing import Dict, List, Optional, Tuple

from .models import AgentMessage, AgentResponse, LoggingConfigPayload, MessageType


class AgentDisconnectedError(RuntimeError):
    """Raised when sending to an agent whose session has been closed."""


class AgentSession:
    def __init__(self, agent_id: str) -> None:
        self.agent_id = agent_id
        self.last_seen = time.monotonic()
        self.closed = False
        self._outbox: asyncio.Queue[AgentMessage] = asyncio.Queue()
        self._channels: Dict[str, asyncio.Queue[AgentResponse]] = {}

    def touch(self) -> None:
        self.last_seen = time.monotonic()

    def close(self) -> None:
        self.closed = True
        self._channels.clear()

    async def _send(
        self,
        message_type: MessageType,
        project_id: int,
        config: Optional[LoggingConfigPayload] = None,
        *,
        expect_reply: bool = False,
    ) -> str:
        if self.closed:
            raise AgentDisconnectedError(f"agent {self.agent_id} is disconnected")
        task_id = uuid.uuid4().hex
        if expect_reply:
            self._channels[task_id] = asyncio.Queue(maxsize=1)
        await self._outbox.put(
            AgentMessage(
                task_id=task_id,
                type=message_type,
                project_id=project_id,
                config=config,
            )
        )
        return task_id

    async def send_logging_config(self, project_id: int, payload: LoggingConfigPayload) -> str:
        return await self._send(MessageType.LOGGING_CONFIG, project_id, payload)

    async def send_logging_start(self, project_id: int) -> str:
        return await self._send(MessageType.LOGGING_START, project_id, expect_reply=True)

    async def send_logging_stop(self, project_id: int) -> str:
        return await self._send(MessageType.LOGGING_STOP, project_id)

    async def read(self, task_id: str) -> AgentResponse:
        try:
            channel = self._channels[task_id]
        except KeyError as exc:
            raise AgentDisconnectedError(
                f"no response channel for task {task_id} on agent {self.agent_id}"
            ) from exc
        return await channel.get()

    def close_channel(self, task_id: str) -> None:
        self._channels.pop(task_id, None)

    def deliver_response(self, response: AgentResponse) -> bool:
        """Route *response* to its waiting task; False if nobody is waiting."""

        channel = self._channels.get(response.task_id)
        if channel is None or channel.full():
            return False
        channel.put_nowait(response)
        return True

    async def next_message(self, timeout: float = 1.0) -> Optional[AgentMessage]:
        try:
            return await asyncio.wait_for(self._outbox.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None


class AgentPool:
    """Connected agents, queryable by ID prefix. Stale agents are hidden."""

    def __init__(self, heartbeat_timeout: float = 30.0) -> None:
        self.heartbeat_timeout = heartbeat_timeout
        self._sessions: Dict[str, AgentSession] = {}

    def _alive(self, session: AgentSession) -> bool:
        if session.closed:
            return False
        if self.heartbeat_timeout <= 0:
            return True
        return time.monotonic() - session.last_seen <= self.heartbeat_timeout

    def touch(self, agent_id: str) -> Tuple[AgentSession, bool]:
        """Register or refresh *agent_id*; the flag is True for (re)connects."""

        session = self._sessions.get(agent_id)
        if session is not None and self._alive(session):
            session.touch()
            return session, False
        if session is not None:
            session.close()
        session = AgentSession(agent_id)
        self._sessions[agent_id] = session
        return session, True

    def get(self, agent_id: str) -> Optional[AgentSession]:
        session = self._sessions.get(agent_id)
        if session is None or not self._alive(session):
            return None
        return session

    def remove(self, agent_id: str) -> None:
        session = self._sessions.pop(agent_id, None)
        if session is not None:
            session.close()

    def prefix(self, prefix: str) -> List[AgentSession]:
        return [session for session in self.all() if session.agent_id.startswith(prefix)]

    def all(self) -> List[AgentSession]:
        sessions = [session for session in self._sessions.values() if self._alive(session)]
        return sorted(sessions, key=lambda s: s.agent_id)
