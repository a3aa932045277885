"""Command line entry point for running a collector agent."""
from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Callable, Dict, Optional, Set

from logcfg_agent import (
    AgentClient,
    AgentCommunicationError,
    AgentConfig,
    load_agent_config,
    run_agent,
)
from logcfg_master.models import (
    AgentHeartbeat,
    AgentMessage,
    AgentResponse,
    LoggingConfigPayload,
    MessageType,
)


class CollectorState:
    """Configurations received from the controller, keyed by project."""

    def __init__(self) -> None:
        self.configs: Dict[int, LoggingConfigPayload] = {}
        self.started: Set[int] = set()


def build_heartbeat_factory(config: AgentConfig) -> Callable[[], AgentHeartbeat]:
    def heartbeat_factory() -> AgentHeartbeat:
        return AgentHeartbeat(agent_id=config.agent_id)

    return heartbeat_factory


def build_message_handler(config: AgentConfig, state: CollectorState):
    """Create a handler that records configs and acknowledges start commands."""

    async def message_handler(message: AgentMessage) -> Optional[AgentResponse]:
        if message.type == MessageType.LOGGING_CONFIG:
            if message.config is None:
                logging.warning("Config message %s carried no payload", message.task_id)
                return None
            state.configs[message.project_id] = message.config
            logging.info(
                "Logging config of project %d updated (%s)",
                message.project_id,
                message.config.source.kind,
            )
            return None
        if message.type == MessageType.LOGGING_START:
            if message.project_id not in state.configs:
                return AgentResponse(
                    task_id=message.task_id,
                    agent_id=config.agent_id,
                    type=MessageType.ERROR.value,
                    message=f"project {message.project_id} is not configured",
                )
            state.started.add(message.project_id)
            return AgentResponse(
                task_id=message.task_id,
                agent_id=config.agent_id,
                type=MessageType.LOGGING_STATUS.value,
                ok=True,
            )
        if message.type == MessageType.LOGGING_STOP:
            state.started.discard(message.project_id)
            return None
        logging.warning("Ignoring unsupported message type %s", message.type)
        return None

    return message_handler


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a collector agent")
    parser.add_argument(
        "--config",
        required=True,
        help="Path to the agent YAML configuration set",
    )
    parser.add_argument(
        "--agent-id",
        required=True,
        help="Agent identifier to load from the configuration, e.g. prod-k8s-node1",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        help="Logging level for the agent process",
    )
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> None:
    config = load_agent_config(args.config, args.agent_id)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    client = AgentClient(config.master_url, agent_id=config.agent_id)
    try:
        await run_agent(
            client,
            build_heartbeat_factory(config),
            build_message_handler(config, CollectorState()),
            heartbeat_interval=config.heartbeat_interval,
            poll_interval=config.poll_interval,
        )
    except AgentCommunicationError as exc:
        logging.error("%s", exc)
        raise SystemExit(1)


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    try:
        asyncio.run(_run(args))
    except KeyboardInterrupt:
        logging.info("Agent shutdown requested")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
