"""
Tests for configuration loading and the factory functions.
"""
import pytest

from votebox.config import (
    DEFAULT_CONFIG,
    create_event_log,
    create_registry,
    create_store,
    load_config,
)
from votebox.state.database import SqlRecordStore
from votebox.state.store import FileRecordStore, MemoryRecordStore


def test_defaults_without_config_file():
    assert load_config() == DEFAULT_CONFIG


def test_config_file_merges_over_defaults(tmp_path):
    path = tmp_path / "custom.yaml"
    path.write_text("store:\n  backend: sqlite\n", encoding="utf-8")

    config = load_config(path)

    assert config["store"]["backend"] == "sqlite"
    assert config["paths"]["state_dir"] == "./state"
    assert config["events"]["enabled"] is True


def test_config_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "env.yaml"
    path.write_text("paths:\n  state_dir: /srv/votes\n", encoding="utf-8")
    monkeypatch.setenv("VOTEBOX_CONFIG", str(path))

    assert load_config()["paths"]["state_dir"] == "/srv/votes"


def test_config_in_working_directory(tmp_path):
    (tmp_path / "config.yaml").write_text("logging:\n  level: DEBUG\n", encoding="utf-8")

    assert load_config()["logging"]["level"] == "DEBUG"


def test_empty_config_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    assert load_config(path) == DEFAULT_CONFIG


def test_non_mapping_config_rejected(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(path)


@pytest.mark.parametrize("backend, store_cls", [
    ("file", FileRecordStore),
    ("sqlite", SqlRecordStore),
    ("memory", MemoryRecordStore),
])
def test_create_store(tmp_path, backend, store_cls):
    config = load_config()
    config["paths"]["state_dir"] = str(tmp_path / "state")
    config["store"]["backend"] = backend

    store = create_store(config)
    try:
        assert isinstance(store, store_cls)
    finally:
        store.close()


def test_unknown_backend_rejected():
    config = load_config()
    config["store"]["backend"] = "redis"

    with pytest.raises(ValueError):
        create_store(config)


def test_event_log_can_be_disabled(tmp_path):
    config = load_config()
    config["paths"]["state_dir"] = str(tmp_path / "state")

    assert create_event_log(config).log_path == tmp_path / "state" / "events.jsonl"

    config["events"]["enabled"] = False
    assert create_event_log(config) is None
    assert create_registry(config).event_log is None
