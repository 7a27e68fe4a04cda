"""
Configuration
=============

YAML configuration merged over built-in defaults, plus the factory
functions that turn a config dict into stores, logs and a registry.

Example config.yaml:

    paths:
      state_dir: ./state
    store:
      backend: file      # file | sqlite | memory
    events:
      enabled: true
    logging:
      level: WARNING
"""

import copy
import os
from pathlib import Path
from typing import Optional

import yaml

from .registry import ProposalRegistry
from .state.database import SqlRecordStore
from .state.events import EventLog
from .state.store import FileRecordStore, MemoryRecordStore, RecordStore


CONFIG_ENV_VAR = "VOTEBOX_CONFIG"
DEFAULT_CONFIG_FILE = "config.yaml"

DEFAULT_CONFIG = {
    "paths": {"state_dir": "./state"},
    "store": {"backend": "file"},
    "events": {"enabled": True},
    "logging": {"level": "WARNING"},
}

STORE_BACKENDS = ("file", "sqlite", "memory")


def _merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Optional[str | Path] = None) -> dict:
    """
    Load configuration.

    Lookup order: explicit path, then $VOTEBOX_CONFIG, then ./config.yaml.
    An explicit path must exist; the fallbacks are optional.
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        candidate = Path(env_path) if env_path else Path(DEFAULT_CONFIG_FILE)
        if not candidate.exists():
            return copy.deepcopy(DEFAULT_CONFIG)
        path = candidate

    with open(path, encoding="utf-8") as f:
        loaded = yaml.safe_load(f) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"{path}: top level of the config must be a mapping")
    return _merge(DEFAULT_CONFIG, loaded)


def state_dir(config: dict) -> Path:
    return Path(config.get("paths", {}).get("state_dir", "./state"))


def create_store(config: dict) -> RecordStore:
    """Create the configured record store backend"""
    backend = config.get("store", {}).get("backend", "file")
    if backend == "file":
        return FileRecordStore(state_dir(config))
    if backend == "sqlite":
        return SqlRecordStore(state_dir(config) / "votebox.db")
    if backend == "memory":
        return MemoryRecordStore()
    raise ValueError(
        f"unknown store backend {backend!r}, expected one of: {', '.join(STORE_BACKENDS)}"
    )


def create_event_log(config: dict) -> Optional[EventLog]:
    """Create the audit log, or None when disabled"""
    if not config.get("events", {}).get("enabled", True):
        return None
    return EventLog(state_dir(config) / "events.jsonl")


def create_registry(config: dict) -> ProposalRegistry:
    return ProposalRegistry(create_store(config), create_event_log(config))
