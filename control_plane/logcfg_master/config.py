"""Configuration utilities for the logging configuration controller."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml

SUPPORTED_STORES = {"file", "redis"}


@dataclass
class RedisConfig:
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    namespace: str = "logcfg"


@dataclass
class MasterConfig:
    data_dir: str = "./data"
    logging_report: str = ""
    ack_timeout: float = 10.0
    agent_heartbeat_timeout: float = 30.0
    scheduler: str = "project_modulo"
    store: str = "file"
    redis: RedisConfig | None = None
    log_file: str | None = None
    log_level: str = "INFO"
    log_format: str = "text"


DEFAULT_CONFIG = MasterConfig()


def load_config(path: str | Path | None) -> MasterConfig:
    if path is None:
        return DEFAULT_CONFIG
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(path)
    with config_path.open("r", encoding="utf-8") as fh:
        data: Dict[str, Any] = yaml.safe_load(fh) or {}

    store = data.get("store", DEFAULT_CONFIG.store)
    if store not in SUPPORTED_STORES:
        raise ValueError(
            f"Unsupported assignment store '{store}'. Expected one of {sorted(SUPPORTED_STORES)}"
        )
    redis_cfg = data.get("redis")
    redis = RedisConfig(**redis_cfg) if redis_cfg else None
    if store == "redis" and redis is None:
        raise ValueError("Redis configuration is required when store is 'redis'")

    return MasterConfig(
        data_dir=str(data.get("data_dir", DEFAULT_CONFIG.data_dir)),
        logging_report=data.get("logging_report", DEFAULT_CONFIG.logging_report),
        ack_timeout=float(data.get("ack_timeout", DEFAULT_CONFIG.ack_timeout)),
        agent_heartbeat_timeout=float(
            data.get("agent_heartbeat_timeout", DEFAULT_CONFIG.agent_heartbeat_timeout)
        ),
        scheduler=data.get("scheduler", DEFAULT_CONFIG.scheduler),
        store=store,
        redis=redis,
        log_file=data.get("log_file"),
        log_level=data.get("log_level", DEFAULT_CONFIG.log_level),
        log_format=data.get("log_format", DEFAULT_CONFIG.log_format),
    )
