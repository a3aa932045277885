"""FastAPI wrapper exposing the logging configuration controller."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Body, Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse

from .config import MasterConfig, load_config
from .errors import AssignmentNotFound, LoggingConfigError
from .models import AgentHeartbeat, AgentMessage, AgentResponse, Assignment
from .server import LoggingController

_CONTROLLER_INSTANCE: LoggingController | None = None
_CONTROLLER_CONFIG_PATH: Optional[str] = None

POLL_TIMEOUT = 1.0


def get_controller(config_path: Optional[str] = None) -> LoggingController:
    global _CONTROLLER_INSTANCE, _CONTROLLER_CONFIG_PATH

    if _CONTROLLER_INSTANCE is None:
        config: MasterConfig = load_config(config_path)
        _CONTROLLER_INSTANCE = LoggingController(config)
        _CONTROLLER_CONFIG_PATH = config_path
        return _CONTROLLER_INSTANCE

    if config_path is not None and config_path != _CONTROLLER_CONFIG_PATH:
        config = load_config(config_path)
        _CONTROLLER_INSTANCE = LoggingController(config)
        _CONTROLLER_CONFIG_PATH = config_path

    return _CONTROLLER_INSTANCE


def reset_controller_cache() -> None:
    global _CONTROLLER_INSTANCE, _CONTROLLER_CONFIG_PATH
    _CONTROLLER_INSTANCE = None
    _CONTROLLER_CONFIG_PATH = None


def controller_dependency() -> LoggingController:
    return get_controller()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Resolve through dependency_overrides so tests can inject a controller.
    provider = app.dependency_overrides.get(controller_dependency, controller_dependency)
    controller: LoggingController = provider()
    await controller.restore()
    try:
        yield
    finally:
        await controller.close()
        reset_controller_cache()


app = FastAPI(title="Logging Config Controller", version="0.1.0", lifespan=lifespan)


@app.exception_handler(LoggingConfigError)
async def logging_config_error_handler(
    request: Request, exc: LoggingConfigError
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code, "msg": str(exc)},
    )


@app.post("/logging/config", status_code=204)
async def configure_logging(
    payload: Any = Body(...),
    controller: LoggingController = Depends(controller_dependency),
) -> Response:
    await controller.configure(payload)
    return Response(status_code=204)


@app.get("/logging", response_model=list[Assignment])
async def list_configs(
    controller: LoggingController = Depends(controller_dependency),
) -> list[Assignment]:
    return await controller.list_assignments()


@app.get("/logging/{project_id}", response_model=Assignment)
async def get_config(
    project_id: int, controller: LoggingController = Depends(controller_dependency)
) -> Assignment:
    assignment = await controller.get_assignment(project_id)
    if assignment is None:
        raise AssignmentNotFound(project_id)
    return assignment


@app.delete("/logging/{project_id}", status_code=204)
async def delete_config(
    project_id: int, controller: LoggingController = Depends(controller_dependency)
) -> Response:
    await controller.remove(project_id)
    return Response(status_code=204)


@app.post("/logging/{project_id}/start", status_code=204)
async def start_logging(
    project_id: int, controller: LoggingController = Depends(controller_dependency)
) -> Response:
    await controller.start_logging(project_id)
    return Response(status_code=204)


@app.post("/logging/{project_id}/stop", status_code=204)
async def stop_logging(
    project_id: int, controller: LoggingController = Depends(controller_dependency)
) -> Response:
    await controller.stop_logging(project_id)
    return Response(status_code=204)


@app.post("/agents/heartbeat")
async def agent_heartbeat(
    heartbeat: AgentHeartbeat, controller: LoggingController = Depends(controller_dependency)
) -> dict:
    await controller.agent_heartbeat(heartbeat)
    return {"status": "ok"}


@app.post("/agents/{agent_id}/messages", response_model=Optional[AgentMessage])
async def next_message(
    agent_id: str, controller: LoggingController = Depends(controller_dependency)
) -> Optional[AgentMessage]:
    return await controller.next_message(agent_id, timeout=POLL_TIMEOUT)


@app.post("/agents/responses")
async def report_response(
    response: AgentResponse, controller: LoggingController = Depends(controller_dependency)
) -> dict:
    await controller.report_response(response)
    return {"status": "ack"}
