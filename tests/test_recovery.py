"""
Tests for startup recovery.
"""
from votebox.recovery import RecoveryManager
from votebox.state.events import EventType
from votebox.state.records import Proposal
from votebox.state.store import FileRecordStore, MemoryRecordStore


def test_clean_store(state_dir, event_log):
    store = FileRecordStore(state_dir)
    store.put(1, Proposal(description="a", owner="alice"))
    store.put(2, Proposal(description="b", owner="alice"))

    result = RecoveryManager(store, event_log).recover()

    assert result.records_found == 2
    assert result.records_valid == 2
    assert result.partial_writes_removed == 0
    assert result.clean

    events = event_log.find_events(EventType.RECOVERY_COMPLETED)
    assert len(events) == 1
    assert events[0].data["records_valid"] == 2


def test_partial_writes_and_corrupt_records(state_dir):
    store = FileRecordStore(state_dir)
    store.put(1, Proposal(description="a", owner="alice"))
    store.put(2, Proposal(description="b", owner="alice"))
    store.record_path(2).write_bytes(b"\x00\x01")
    store.record_path(3).with_suffix(".tmp").write_bytes(b'{"descr')

    result = RecoveryManager(store).recover()

    assert result.partial_writes_removed == 1
    assert result.records_found == 2
    assert result.records_valid == 1
    assert result.corrupt_keys == [2]
    assert not result.clean
    # Corrupt records are reported, not deleted
    assert store.record_path(2).exists()


def test_memory_store_has_nothing_to_clean():
    store = MemoryRecordStore()
    store.put(1, Proposal(description="a", owner="alice"))

    result = RecoveryManager(store).recover()

    assert result.records_valid == 1
    assert result.partial_writes_removed == 0
