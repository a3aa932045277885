from __future__ import annotations

from pathlib import Path

import pytest

from logcfg_master import app as controller_app
from logcfg_master.config import DEFAULT_CONFIG, load_config


@pytest.fixture(autouse=True)
def clear_controller_cache():
    controller_app.reset_controller_cache()
    try:
        yield
    finally:
        controller_app.reset_controller_cache()


def test_load_config_defaults_without_path():
    config = load_config(None)
    assert config is DEFAULT_CONFIG
    assert config.store == "file"
    assert config.scheduler == "project_modulo"


def test_load_config_reads_yaml(tmp_path: Path):
    config_path = tmp_path / "controller.yml"
    config_path.write_text(
        """
data_dir: /srv/logcfg
logging_report: http://gw:8080/report
ack_timeout: 3
store: redis
redis:
  host: redis.internal
  port: 6380
  db: 2
  namespace: lc
""".strip()
    )

    config = load_config(config_path)

    assert config.data_dir == "/srv/logcfg"
    assert config.logging_report == "http://gw:8080/report"
    assert config.ack_timeout == 3.0
    assert config.redis is not None
    assert (config.redis.host, config.redis.port, config.redis.namespace) == (
        "redis.internal",
        6380,
        "lc",
    )


def test_load_config_rejects_bad_store(tmp_path: Path):
    config_path = tmp_path / "controller.yml"
    config_path.write_text("store: sqlite\n")
    with pytest.raises(ValueError):
        load_config(config_path)

    config_path.write_text("store: redis\n")
    with pytest.raises(ValueError):
        load_config(config_path)

    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yml")


def test_get_controller_reuses_provided_config_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    config_path = tmp_path / "controller.yml"
    config_path.write_text(f"data_dir: {tmp_path / 'data'}\nack_timeout: 4.5\n")

    created_configs: list = []

    class DummyController:
        def __init__(self, config):
            created_configs.append(config)

    monkeypatch.setattr(controller_app, "LoggingController", DummyController)

    first = controller_app.get_controller(str(config_path))
    assert isinstance(first, DummyController)
    assert created_configs[0].ack_timeout == 4.5

    second = controller_app.get_controller()
    assert second is first
    assert len(created_configs) == 1
