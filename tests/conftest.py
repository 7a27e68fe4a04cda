"""
Shared fixtures for the votebox test suite.
"""
import pytest

from votebox.registry import ProposalRegistry
from votebox.state.database import SqlRecordStore
from votebox.state.events import EventLog
from votebox.state.store import FileRecordStore, MemoryRecordStore


STORE_BACKENDS = ["memory", "file", "sqlite"]


def open_store(backend, state_dir):
    """Open a store of the given backend rooted at state_dir"""
    if backend == "memory":
        return MemoryRecordStore()
    if backend == "file":
        return FileRecordStore(state_dir)
    return SqlRecordStore(state_dir / "votebox.db")


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Keep ./config.yaml and ./state lookups inside the test's temp dir."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("VOTEBOX_CONFIG", raising=False)
    monkeypatch.delenv("VOTEBOX_CALLER", raising=False)


@pytest.fixture
def state_dir(tmp_path):
    path = tmp_path / "state"
    path.mkdir()
    return path


@pytest.fixture(params=STORE_BACKENDS)
def store(request, state_dir):
    """Every store backend, one test run each."""
    store = open_store(request.param, state_dir)
    yield store
    store.close()


@pytest.fixture(params=["file", "sqlite"])
def durable_backend(request):
    return request.param


@pytest.fixture
def event_log(state_dir):
    return EventLog(state_dir / "events.jsonl")


@pytest.fixture
def registry(event_log):
    return ProposalRegistry(MemoryRecordStore(), event_log)
