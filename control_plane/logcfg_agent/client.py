"""Async collector agent client interacting with the controller."""

from __future__ import annotations

import asyncio
import time
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import httpx

from logcfg_master.models import AgentHeartbeat, AgentMessage, AgentResponse


def _jsonable_payload(model: Any) -> Any:
    """Convert Pydantic-like models into JSON-serialisable payloads."""

    def _convert(value: Any) -> Any:
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, Enum):
            return value.value
        if hasattr(value, "model_dump"):
            return _convert(value.model_dump())
        if isinstance(value, dict):
            return {key: _convert(inner) for key, inner in value.items()}
        if isinstance(value, (list, tuple)):
            return [_convert(inner) for inner in value]
        return value

    return _convert(model)


class AgentCommunicationError(RuntimeError):
    """Raised when the agent cannot communicate with the controller."""


class AgentClient:
    def __init__(
        self,
        master_url: str,
        agent_id: str,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.master_url = master_url.rstrip("/")
        self.agent_id = agent_id
        self._client = httpx.AsyncClient(timeout=30.0, transport=transport)

    async def send_heartbeat(self, heartbeat: AgentHeartbeat) -> None:
        payload = _jsonable_payload(heartbeat)
        response = await self._client.post(f"{self.master_url}/agents/heartbeat", json=payload)
        response.raise_for_status()

    async def poll_message(self) -> Optional[AgentMessage]:
        response = await self._client.post(f"{self.master_url}/agents/{self.agent_id}/messages")
        response.raise_for_status()
        body = response.json()
        if body is None:
            return None
        return AgentMessage.model_validate(body)

    async def report_response(self, result: AgentResponse) -> None:
        payload = _jsonable_payload(result)
        response = await self._client.post(f"{self.master_url}/agents/responses", json=payload)
        response.raise_for_status()

    async def close(self) -> None:
        await self._client.aclose()


MessageHandler = Callable[[AgentMessage], Awaitable[Optional[AgentResponse]]]


async def run_agent(
    client: AgentClient,
    heartbeat_factory: Callable[[], AgentHeartbeat],
    message_handler: MessageHandler,
    *,
    heartbeat_interval: float = 5.0,
    poll_interval: float = 0.0,
) -> None:
    last_heartbeat: float | None = None
    try:
        while True:
            now = time.monotonic()
            if last_heartbeat is None or now - last_heartbeat >= heartbeat_interval:
                await client.send_heartbeat(heartbeat_factory())
                last_heartbeat = now
            message = await client.poll_message()
            if message is not None:
                reply = await message_handler(message)
                if reply is not None:
                    await client.report_response(reply)
            await asyncio.sleep(poll_interval)
    except httpx.HTTPError as exc:  # pragma: no cover - exercised via async tests
        raise AgentCommunicationError(
            f"Failed to communicate with controller at {client.master_url}: {exc}"
        ) from exc
    finally:
        await client.close()
