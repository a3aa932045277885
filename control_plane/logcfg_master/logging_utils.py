"""Logging helpers for control plane components."""
from __future__ import annotations

import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

EXTRA_PREFIX = "_lc_"

_LOGGER_CACHE: dict[str, logging.Logger] = {}


class JsonFormatter(logging.Formatter):
    """JSON formatter that lifts ``_lc_`` prefixed extras into the payload."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key.startswith(EXTRA_PREFIX):
                payload[key[len(EXTRA_PREFIX):]] = value
        return json.dumps(payload, ensure_ascii=False, default=str)


def log_extra(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra`` mapping understood by :class:`JsonFormatter`."""

    return {f"{EXTRA_PREFIX}{key}": value for key, value in fields.items()}


def configure_logging(
    name: str,
    level: int | str = logging.INFO,
    log_file: Optional[Path] = None,
    *,
    json_format: bool = False,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    if name in _LOGGER_CACHE:
        return _LOGGER_CACHE[name]
    logger = logging.getLogger(name)
    logger.setLevel(level)
    formatter: logging.Formatter
    if json_format:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    handler: logging.Handler
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    _LOGGER_CACHE[name] = logger
    return logger
