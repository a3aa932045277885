"""CLI entry point for launching the logging configuration controller."""
from __future__ import annotations

import argparse
import asyncio
import sys

import uvicorn

from logcfg_master.app import app, get_controller, reset_controller_cache
from logcfg_master.server import LoggingController
from logcfg_master.store import AssignmentStore, build_store


def ensure_store_available(controller: LoggingController) -> None:
    """Verify that the assignment store is usable before starting the server.

    The check runs against a separate store instance so that no connection is
    bound to the short-lived event loop used here.
    """

    store: AssignmentStore = build_store(controller.config)

    async def check() -> None:
        try:
            await store.health_check()
        finally:
            await store.close()

    try:
        asyncio.run(check())
    except Exception as exc:
        raise RuntimeError(f"Assignment store check failed: {exc}") from exc


def run_startup_checks(controller: LoggingController) -> None:
    try:
        ensure_store_available(controller)
    except RuntimeError as exc:
        print(f"Controller startup aborted: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the logging configuration controller")
    parser.add_argument("--config", help="Path to YAML configuration", default=None)
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    # Preload controller with configuration.
    reset_controller_cache()
    try:
        controller = get_controller(args.config)
    except Exception as exc:
        print(f"Controller startup aborted: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    run_startup_checks(controller)

    uvicorn.run(app, host=args.host, port=args.port, log_level="info")


if __name__ == "__main__":
    main()
