import asyncio
import json
from pathlib import Path

from logcfg_master.config import MasterConfig, RedisConfig
from logcfg_master.models import Assignment, parse_config_request
from logcfg_master.store import FileAssignmentStore, RedisAssignmentStore, build_store


def _assignment(project_id: int = 3, started: bool = True) -> Assignment:
    _, args = parse_config_request(
        {
            "project_id": project_id,
            "type": "k8s",
            "namespace": "prod",
            "names": ["api", "web"],
            "api": "https://k8s.internal:6443",
            "token": "t0ken",
            "exclude": "^GET /healthz",
            "batch": 500,
        }
    )
    return Assignment(id=project_id, args=args, cid="prod-k8s-a", started=started)


def test_file_store_round_trips_all_fields(tmp_path: Path):
    store = FileAssignmentStore(tmp_path)
    assignment = _assignment()

    asyncio.run(store.save(assignment))
    loaded = asyncio.run(store.load_all())

    assert loaded == [assignment]
    record = json.loads((tmp_path / "logging" / "3.json").read_text())
    assert set(record) == {"id", "args", "cid", "started"}
    assert record["cid"] == "prod-k8s-a"
    assert record["started"] is True


def test_file_store_overwrites_previous_record(tmp_path: Path):
    store = FileAssignmentStore(tmp_path)
    asyncio.run(store.save(_assignment(started=True)))
    asyncio.run(store.save(_assignment(started=False)))

    loaded = asyncio.run(store.load_all())

    assert len(loaded) == 1
    assert loaded[0].started is False
    assert sorted(p.name for p in (tmp_path / "logging").iterdir()) == ["3.json"]


def test_file_store_skips_unreadable_records(tmp_path: Path, caplog):
    store = FileAssignmentStore(tmp_path)
    asyncio.run(store.save(_assignment(project_id=1)))
    (tmp_path / "logging" / "2.json").write_text("{not json")

    loaded = asyncio.run(store.load_all())

    assert [a.id for a in loaded] == [1]
    assert "2.json" in caplog.text


def test_file_store_load_without_directory_is_empty(tmp_path: Path):
    assert asyncio.run(FileAssignmentStore(tmp_path / "missing").load_all()) == []


def test_file_store_delete(tmp_path: Path):
    store = FileAssignmentStore(tmp_path)
    asyncio.run(store.save(_assignment()))
    asyncio.run(store.delete(3))
    asyncio.run(store.delete(3))

    assert not store.path_for(3).exists()


class FakeRedis:
    def __init__(self):
        self.data = {}
        self.pings = 0
        self.closed = False

    async def set(self, key, value):
        self.data[key] = value

    async def get(self, key):
        return self.data.get(key)

    async def delete(self, *keys):
        for key in keys:
            self.data.pop(key, None)

    async def scan_iter(self, match=None):
        prefix = match.rstrip("*") if match else ""
        for key in list(self.data):
            if key.startswith(prefix):
                yield key

    async def ping(self):
        self.pings += 1

    async def aclose(self):
        self.closed = True


def test_redis_store_round_trip_and_namespacing():
    client = FakeRedis()
    client.data["other:logging:9"] = "ignored"
    store = RedisAssignmentStore(client, namespace="logcfg")

    async def scenario():
        await store.save(_assignment(project_id=5))
        await store.save(_assignment(project_id=2, started=False))
        loaded = await store.load_all()
        await store.delete(5)
        remaining = await store.load_all()
        await store.health_check()
        await store.close()
        return loaded, remaining

    loaded, remaining = asyncio.run(scenario())

    assert [a.id for a in loaded] == [2, 5]
    assert "logcfg:logging:5" not in client.data
    assert [a.id for a in remaining] == [2]
    assert client.pings == 1
    assert client.closed is True


def test_build_store_selects_backend(tmp_path: Path):
    file_store = build_store(MasterConfig(data_dir=str(tmp_path)))
    assert isinstance(file_store, FileAssignmentStore)
    assert file_store.root == tmp_path / "logging"

    redis_store = build_store(MasterConfig(store="redis", redis=RedisConfig(namespace="lc")))
    assert isinstance(redis_store, RedisAssignmentStore)
