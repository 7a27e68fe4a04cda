"""
Tests for the record store backends.

Contract tests run against every backend; restart tests reopen the
durable backends on the same state directory.
"""
import pytest

from votebox.errors import CorruptRecord, RecordTooLarge
from votebox.state.records import MAX_KEY, Proposal
from votebox.state.store import FileRecordStore

from .conftest import open_store


def make_proposal(description="test", owner="alice", **kwargs):
    return Proposal(description=description, owner=owner, **kwargs)


def test_get_missing_key_returns_none(store):
    assert store.get(1) is None
    assert store.count() == 0


def test_put_fresh_insert_returns_none(store):
    assert store.put(1, make_proposal()) is None
    assert store.count() == 1


def test_put_overwrite_returns_previous(store):
    first = make_proposal("first")
    store.put(1, first)

    previous = store.put(1, make_proposal("second"))

    assert previous == first
    assert store.get(1).description == "second"
    assert store.count() == 1


def test_get_returns_equal_record(store):
    proposal = make_proposal(approve=2, reject=1, pass_=4, is_active=False, voted=["bob", "carol"])
    store.put(5, proposal)

    assert store.get(5) == proposal


def test_get_returns_independent_copy(store):
    store.put(1, make_proposal())

    fetched = store.get(1)
    fetched.voted.append("mallory")

    assert store.get(1).voted == []


def test_replace_existing(store):
    store.put(1, make_proposal("old"))

    assert store.replace(1, make_proposal("new")) is True
    assert store.get(1).description == "new"


def test_replace_missing_writes_nothing(store):
    assert store.replace(1, make_proposal()) is False
    assert store.get(1) is None
    assert store.count() == 0


def test_keys_are_ascending(store):
    for key in (MAX_KEY, 10, 2**63, 0, 9):
        store.put(key, make_proposal(str(key)))

    assert store.keys() == [0, 9, 10, 2**63, MAX_KEY]
    assert [k for k, _ in store.items()] == store.keys()


def test_invalid_keys_rejected(store):
    with pytest.raises(ValueError):
        store.get(-1)
    with pytest.raises(ValueError):
        store.put(MAX_KEY + 1, make_proposal())


def test_oversize_put_rejected(store):
    proposal = make_proposal()
    # Grow the record past the bound after construction
    proposal.description = "x" * 6000

    with pytest.raises(RecordTooLarge):
        store.put(1, proposal)
    assert store.get(1) is None


def test_writes_survive_restart(durable_backend, state_dir):
    store = open_store(durable_backend, state_dir)
    store.put(1, make_proposal("one"))
    store.put(2, make_proposal("two", voted=["bob"], approve=1))
    store.replace(1, make_proposal("one, edited", is_active=False))
    store.close()

    reopened = open_store(durable_backend, state_dir)
    try:
        assert reopened.count() == 2
        assert reopened.get(1) == make_proposal("one, edited", is_active=False)
        assert reopened.get(2).voted == ["bob"]
    finally:
        reopened.close()


def test_file_store_layout(state_dir):
    store = FileRecordStore(state_dir)
    proposal = make_proposal()
    store.put(42, proposal)

    path = state_dir / "proposals" / "00000000000000000042.json"
    assert path.exists()
    assert path.read_bytes() == proposal.to_bytes()
    assert not list((state_dir / "proposals").glob("*.tmp"))


def test_file_store_ignores_foreign_files(state_dir):
    store = FileRecordStore(state_dir)
    store.put(1, make_proposal())
    (state_dir / "proposals" / "notes.json").write_text("{}")

    assert store.keys() == [1]


def test_file_store_corrupt_record(state_dir):
    store = FileRecordStore(state_dir)
    store.put(3, make_proposal())
    store.record_path(3).write_bytes(b"garbage")

    with pytest.raises(CorruptRecord) as exc_info:
        store.get(3)
    assert exc_info.value.key == 3

    # put repairs an unreadable record
    assert store.put(3, make_proposal("fixed")) is None
    assert store.get(3).description == "fixed"


def test_file_store_remove_partial_writes(state_dir):
    store = FileRecordStore(state_dir)
    store.put(1, make_proposal())
    (state_dir / "proposals" / "00000000000000000002.tmp").write_bytes(b'{"desc')

    assert store.remove_partial_writes() == 1
    assert store.remove_partial_writes() == 0
    assert store.keys() == [1]


def test_put_rejects_record_mutated_into_invalid_state(store):
    proposal = make_proposal()
    proposal.voted.extend(["bob", "bob"])
    proposal.pass_ = -1

    with pytest.raises(ValueError):
        store.put(1, proposal)
    with pytest.raises(ValueError):
        store.replace(1, proposal)

    assert store.get(1) is None
    assert store.count() == 0


def test_replace_rejects_invalid_record_and_keeps_old_one(store):
    original = make_proposal()
    store.put(1, original)
    broken = make_proposal()
    broken.is_active = "false"

    with pytest.raises(ValueError):
        store.replace(1, broken)

    assert store.get(1) == original
