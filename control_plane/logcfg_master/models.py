"""Shared Pydantic models used by the control plane."""

from __future__ import annotations

import re
from datetime import datetime, UTC
from enum import Enum
from pathlib import PurePosixPath
from typing import Annotated, Any, List, Literal, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, Field, PositiveInt, ValidationError, field_validator

from .errors import InvalidParameter, UnsupportedMode

DEFAULT_BATCH = 1000
DEFAULT_BUFFER = 4096
DEFAULT_INTERVAL = 30


class K8sSource(BaseModel):
    """Clustered collection scoped to a namespace."""

    kind: Literal["k8s"] = "k8s"
    namespace: str = Field(..., min_length=1)
    names: List[str] = Field(
        default_factory=list, description="Selector names of the workloads to follow"
    )
    dir: str = "/var/log/pods"
    api: str = Field("", description="Orchestrator API endpoint")
    token: str = ""

    @field_validator("names", mode="before")
    @classmethod
    def _split_names(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [name.strip() for name in value.split(",") if name.strip()]
        return value


class FileSource(BaseModel):
    """Decentralized collection where every agent tails a local directory."""

    kind: Literal["logtail"] = "logtail"
    dir: str = Field(..., min_length=1)

    @field_validator("dir")
    @classmethod
    def _absolute_dir(cls, value: str) -> str:
        if not PurePosixPath(value).is_absolute():
            raise ValueError("dir must be an absolute path")
        return value


LogSource = Annotated[Union[K8sSource, FileSource], Field(discriminator="kind")]

# Request ``type`` values mapped to the payload they build.
MODE_SOURCES: dict[str, type[BaseModel]] = {
    "k8s": K8sSource,
    "logtail": FileSource,
}
UNIMPLEMENTED_MODES = frozenset({"docker"})


class ConfigArgs(BaseModel):
    exclude: str = ""
    batch: PositiveInt = DEFAULT_BATCH
    buffer: PositiveInt = DEFAULT_BUFFER
    interval: PositiveInt = DEFAULT_INTERVAL
    source: LogSource

    @field_validator("exclude")
    @classmethod
    def _exclude_compiles(cls, value: str) -> str:
        if value:
            try:
                re.compile(value)
            except re.error as exc:
                raise ValueError(str(exc)) from exc
        return value

    @property
    def mode(self) -> str:
        return self.source.kind


class Assignment(BaseModel):
    """Durable binding of a project to its logging configuration."""

    id: int
    args: ConfigArgs
    cid: str = Field("", description="Collector chosen for clustered mode, empty for broadcast")
    started: bool = False

    @property
    def is_broadcast(self) -> bool:
        return isinstance(self.args.source, FileSource)


class MessageType(str, Enum):
    LOGGING_CONFIG = "logging_config"
    LOGGING_START = "logging_start"
    LOGGING_STOP = "logging_stop"
    LOGGING_STATUS = "logging_status"
    ERROR = "error"


class LoggingConfigPayload(BaseModel):
    exclude: str
    batch: int
    buffer: int
    interval: int
    report: str = Field(..., description="Endpoint the agent ships collected logs to")
    source: LogSource

    @classmethod
    def from_args(cls, args: ConfigArgs, report: str) -> "LoggingConfigPayload":
        return cls(
            exclude=args.exclude,
            batch=args.batch,
            buffer=args.buffer,
            interval=args.interval,
            report=report,
            source=args.source,
        )


class AgentMessage(BaseModel):
    task_id: str
    type: MessageType
    project_id: int
    config: Optional[LoggingConfigPayload] = None


class AgentResponse(BaseModel):
    task_id: str
    agent_id: str
    type: str
    ok: bool = False
    message: str = ""


class AgentHeartbeat(BaseModel):
    agent_id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


def _as_invalid_parameter(exc: ValidationError) -> InvalidParameter:
    errors = exc.errors()
    if not errors:
        return InvalidParameter("request")
    loc = [str(part) for part in errors[0].get("loc", ()) if part != "source"]
    field = ".".join(loc) or "request"
    if field == "exclude":
        return InvalidParameter(f"exclude: {errors[0].get('msg', '')}")
    return InvalidParameter(field)


def _project_id(value: Any) -> int:
    if isinstance(value, bool) or value is None:
        raise InvalidParameter("project_id")
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        raise InvalidParameter("project_id")
    try:
        return int(value)
    except ValueError as exc:
        raise InvalidParameter("project_id") from exc


def parse_config_request(raw: Mapping[str, Any]) -> Tuple[int, ConfigArgs]:
    """Validate a raw configuration request into ``(project_id, ConfigArgs)``.

    The ``exclude`` pattern is checked before the mode so that a bad filter is
    reported regardless of the mode payload. Raises :class:`InvalidParameter`
    (or :class:`UnsupportedMode`) on any failure.
    """

    if not isinstance(raw, Mapping):
        raise InvalidParameter("request")
    project_id = _project_id(raw.get("project_id"))

    exclude = raw.get("exclude") or ""
    if not isinstance(exclude, str):
        raise InvalidParameter("exclude")
    if exclude:
        try:
            re.compile(exclude)
        except re.error as exc:
            raise InvalidParameter(f"exclude: {exc}") from exc

    mode = raw.get("type")
    if not isinstance(mode, str):
        raise InvalidParameter("type")
    if mode in UNIMPLEMENTED_MODES:
        raise UnsupportedMode(mode)
    source_cls = MODE_SOURCES.get(mode)
    if source_cls is None:
        raise InvalidParameter("type")

    source_fields = {
        name: raw[name]
        for name in source_cls.model_fields
        if name != "kind" and raw.get(name) is not None
    }
    common = {
        name: raw[name]
        for name in ("batch", "buffer", "interval")
        if raw.get(name) is not None
    }
    try:
        source = source_cls(**source_fields)
        args = ConfigArgs(exclude=exclude, source=source, **common)
    except ValidationError as exc:
        raise _as_invalid_parameter(exc) from exc
    return project_id, args
