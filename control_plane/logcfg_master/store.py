"""Durable per-project storage of logging assignments."""
from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Protocol

from pydantic import ValidationError
from redis.asyncio import Redis

from .config import MasterConfig, RedisConfig
from .models import Assignment

logger = logging.getLogger("logcfg.master.store")


class AssignmentStore(Protocol):
    async def save(self, assignment: Assignment) -> None:
        ...

    async def load_all(self) -> List[Assignment]:
        ...

    async def delete(self, project_id: int) -> None:
        ...

    async def health_check(self) -> None:
        """Verify that the backing store is reachable."""
        ...

    async def close(self) -> None:
        ...


class FileAssignmentStore:
    """One JSON document per project under ``<data_dir>/logging``."""

    def __init__(self, data_dir: str | Path) -> None:
        self.root = Path(data_dir) / "logging"

    def path_for(self, project_id: int) -> Path:
        return self.root / f"{project_id}.json"

    async def save(self, assignment: Assignment) -> None:
        await asyncio.to_thread(self._write, assignment)

    def _write(self, assignment: Assignment) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        target = self.path_for(assignment.id)
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{assignment.id}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(assignment.model_dump_json())
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    async def load_all(self) -> List[Assignment]:
        return await asyncio.to_thread(self._read_all)

    def _read_all(self) -> List[Assignment]:
        if not self.root.is_dir():
            return []
        assignments: list[Assignment] = []
        for path in sorted(self.root.glob("*.json")):
            try:
                assignments.append(Assignment.model_validate_json(path.read_text(encoding="utf-8")))
            except (OSError, ValidationError) as exc:
                logger.error("Skipping unreadable logging config %s: %s", path, exc)
        return assignments

    async def delete(self, project_id: int) -> None:
        await asyncio.to_thread(self.path_for(project_id).unlink, missing_ok=True)

    async def health_check(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        if not os.access(self.root, os.W_OK):
            raise PermissionError(f"{self.root} is not writable")

    async def close(self) -> None:
        return None


class RedisAssignmentStore:
    """Assignments stored as JSON strings under ``<namespace>:logging:<id>``."""

    def __init__(self, client: Redis, namespace: str = "logcfg") -> None:
        self._client = client
        self._namespace = namespace

    @classmethod
    def from_config(cls, config: RedisConfig) -> "RedisAssignmentStore":
        client = Redis(
            host=config.host,
            port=config.port,
            db=config.db,
            encoding="utf-8",
            decode_responses=True,
        )
        return cls(client, namespace=config.namespace)

    def _key(self, project_id: int) -> str:
        return f"{self._namespace}:logging:{project_id}"

    async def save(self, assignment: Assignment) -> None:
        await self._client.set(self._key(assignment.id), assignment.model_dump_json())

    async def load_all(self) -> List[Assignment]:
        assignments: list[Assignment] = []
        async for key in self._client.scan_iter(match=f"{self._namespace}:logging:*"):
            raw = await self._client.get(key)
            if raw is None:
                continue
            try:
                assignments.append(Assignment.model_validate_json(raw))
            except ValidationError as exc:
                logger.error("Skipping unreadable logging config %s: %s", key, exc)
        return sorted(assignments, key=lambda a: a.id)

    async def delete(self, project_id: int) -> None:
        await self._client.delete(self._key(project_id))

    async def health_check(self) -> None:
        await self._client.ping()

    async def close(self) -> None:
        await self._client.aclose()


def build_store(config: MasterConfig) -> AssignmentStore:
    if config.store == "redis":
        if config.redis is None:
            raise ValueError("Redis configuration must be provided for the redis store")
        return RedisAssignmentStore.from_config(config.redis)
    return FileAssignmentStore(config.data_dir)
