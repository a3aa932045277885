"""Configuration helpers for collector agents."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping

import yaml


@dataclass
class AgentConfig:
    master_url: str
    agent_id: str
    poll_interval: float = 1.0
    heartbeat_interval: float = 5.0


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)
    with path.open("r", encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def _as_list(value: Any) -> Iterable[Dict[str, Any]]:
    if isinstance(value, Mapping):
        return [dict(agent_id=key, **(cfg or {})) for key, cfg in value.items()]
    if isinstance(value, list):
        return value
    raise ValueError("Agent configuration 'agents' must be a list or mapping")


def _select_agent_config(agents: Iterable[Dict[str, Any]], agent_id: str) -> Dict[str, Any]:
    for entry in agents:
        if entry.get("agent_id") == agent_id:
            return entry
    raise KeyError(f"Agent '{agent_id}' not found in agent configuration")


def load_agent_config(path: str | Path, agent_id: str) -> AgentConfig:
    data = _load_yaml(Path(path))

    master_url = data.get("master_url")
    if not master_url:
        raise ValueError("Agent configuration requires master_url")

    agents_raw = data.get("agents")
    if not agents_raw:
        raise ValueError("Agent configuration requires an agents section")
    agent_data = _select_agent_config(_as_list(agents_raw), agent_id)

    poll_interval = float(agent_data.get("poll_interval", data.get("poll_interval", 1.0)))
    heartbeat_interval = float(
        agent_data.get("heartbeat_interval", data.get("heartbeat_interval", 5.0))
    )
    if poll_interval <= 0 or heartbeat_interval <= 0:
        raise ValueError("Agent poll and heartbeat intervals must be positive")

    return AgentConfig(
        master_url=agent_data.get("master_url", master_url),
        agent_id=agent_id,
        poll_interval=poll_interval,
        heartbeat_interval=heartbeat_interval,
    )
