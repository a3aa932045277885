"""Error taxonomy surfaced by the logging configuration controller."""
from __future__ import annotations


class LoggingConfigError(Exception):
    """Base class for controller errors rendered as ``{"code", "msg"}`` bodies."""

    code: int = 500
    status_code: int = 500


class InvalidParameter(LoggingConfigError):
    """A request field failed validation; nothing has been sent or stored."""

    code = 400
    status_code = 400

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"bad parameter: {detail}")


class UnsupportedMode(InvalidParameter):
    """The request names a collection mode that has no payload builder."""

    def __init__(self, mode: str) -> None:
        self.mode = mode
        super().__init__(f"type: unsupported mode {mode}")


class NoCollectorAvailable(LoggingConfigError):
    code = 1
    status_code = 503

    def __init__(self, message: str = "no collector available") -> None:
        super().__init__(message)


class AssignmentNotFound(LoggingConfigError):
    code = 404
    status_code = 404

    def __init__(self, project_id: int) -> None:
        self.project_id = project_id
        super().__init__(f"project {project_id} has no logging configuration")


class DeliveryFailure(LoggingConfigError):
    """Sending to an agent failed or its acknowledgment never arrived."""

    def __init__(self, agent_id: str, detail: str) -> None:
        self.agent_id = agent_id
        super().__init__(f"delivery to collector [{agent_id}] failed: {detail}")


class PersistenceFailure(LoggingConfigError):
    def __init__(self, project_id: int, detail: str) -> None:
        self.project_id = project_id
        super().__init__(f"persist logging config of project {project_id}: {detail}")
