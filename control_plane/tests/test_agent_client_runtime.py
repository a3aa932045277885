"""Runtime behaviour tests for the agent client loop."""
from __future__ import annotations

import json

import httpx
import pytest

from logcfg_agent import AgentClient, AgentCommunicationError, run_agent
from logcfg_master.models import AgentHeartbeat, AgentResponse, MessageType


class _FailingClient:
    """Minimal client stub that fails all HTTP interactions."""

    def __init__(self) -> None:
        self.master_url = "http://controller.local"
        self.closed = False
        self._request = httpx.Request("POST", f"{self.master_url}/agents/heartbeat")

    async def send_heartbeat(self, heartbeat: AgentHeartbeat) -> None:  # noqa: ARG002
        raise httpx.ConnectError("boom", request=self._request)

    async def poll_message(self) -> None:
        pytest.fail("poll_message should not be called after send_heartbeat failure")

    async def report_response(self, result) -> None:  # noqa: ARG002
        pytest.fail("report_response should not be called after send_heartbeat failure")

    async def close(self) -> None:
        self.closed = True


@pytest.mark.asyncio
async def test_run_agent_raises_communication_error_and_closes_client() -> None:
    def heartbeat_factory() -> AgentHeartbeat:
        return AgentHeartbeat(agent_id="node-1")

    async def message_handler(_):  # pragma: no cover - not expected to run
        return None

    client = _FailingClient()

    with pytest.raises(AgentCommunicationError) as excinfo:
        await run_agent(client, heartbeat_factory, message_handler)

    assert "Failed to communicate with controller" in str(excinfo.value)
    assert "boom" in str(excinfo.value)
    assert client.closed is True


@pytest.mark.asyncio
async def test_agent_client_round_trip_over_http() -> None:
    seen: list[tuple[str, dict | None]] = []
    start_message = {
        "task_id": "t-1",
        "type": "logging_start",
        "project_id": 5,
        "config": None,
    }

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        seen.append((request.url.path, body))
        if request.url.path == "/agents/k8s-1/messages":
            return httpx.Response(200, json=start_message)
        if request.url.path == "/agents/responses":
            return httpx.Response(200, json={"status": "ack"})
        return httpx.Response(200, json={"status": "ok"})

    client = AgentClient(
        "http://controller.local/", agent_id="k8s-1", transport=httpx.MockTransport(handler)
    )
    await client.send_heartbeat(AgentHeartbeat(agent_id="k8s-1"))
    message = await client.poll_message()
    assert message is not None
    assert message.type == MessageType.LOGGING_START
    await client.report_response(
        AgentResponse(task_id="t-1", agent_id="k8s-1", type="logging_status", ok=True)
    )
    await client.close()

    assert [path for path, _ in seen] == [
        "/agents/heartbeat",
        "/agents/k8s-1/messages",
        "/agents/responses",
    ]
    assert seen[0][1]["agent_id"] == "k8s-1"
    assert isinstance(seen[0][1]["timestamp"], str)
    assert seen[2][1]["ok"] is True


@pytest.mark.asyncio
async def test_poll_message_returns_none_for_empty_poll_and_raises_on_errors() -> None:
    responses = iter([httpx.Response(200, json=None), httpx.Response(500, json={})])

    def handler(request: httpx.Request) -> httpx.Response:
        return next(responses)

    client = AgentClient("http://controller.local", agent_id="k8s-1", transport=httpx.MockTransport(handler))
    assert await client.poll_message() is None
    with pytest.raises(httpx.HTTPStatusError):
        await client.poll_message()
    await client.close()
