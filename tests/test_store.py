"""
State store and staged transaction tests.

Run with: pytest tests/test_store.py -v
"""

import json

import pytest

from landledger.errors import StoreWriteError
from landledger.store import (
    InMemoryStateStore,
    JsonFileStateStore,
    StateTransaction,
    StoreError,
)


class TestInMemoryStateStore:
    """Dict-backed store with per-key versions."""

    def test_get_absent_is_none(self):
        assert InMemoryStateStore().get("missing") is None

    def test_put_then_get(self):
        store = InMemoryStateStore()
        store.put("k", b"v")
        assert store.get("k") == b"v"
        assert store.keys() == ["k"]

    def test_versions_increase(self):
        store = InMemoryStateStore()
        store.put("a", b"1")
        store.put("b", b"2")
        store.put("a", b"3")
        assert store.get_versioned("a").version == 3
        assert store.get_versioned("b").version == 2

    def test_rejects_non_bytes(self):
        with pytest.raises(StoreError):
            InMemoryStateStore().put("k", "text")

    def test_injected_failure(self):
        store = InMemoryStateStore(fail_on={"k"})
        with pytest.raises(StoreError):
            store.put("k", b"v")
        assert store.get("k") is None

    def test_initial_contents(self):
        store = InMemoryStateStore(initial={"x": b"1"})
        assert store.snapshot() == {"x": b"1"}


class TestJsonFileStateStore:
    """Whole-map JSON file persistence."""

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "state.json"
        JsonFileStateStore(path).put("alice", b'{"aadhar":1}')
        assert JsonFileStateStore(path).get("alice") == b'{"aadhar":1}'

    def test_file_is_a_json_object(self, tmp_path):
        path = tmp_path / "state.json"
        store = JsonFileStateStore(path)
        store.put("abc", b"99")
        assert json.loads(path.read_text(encoding="utf-8")) == {"abc": "99"}

    def test_non_utf8_values_survive(self, tmp_path):
        path = tmp_path / "state.json"
        JsonFileStateStore(path).put("blob", b"\xff\x00\xfe")
        assert JsonFileStateStore(path).get("blob") == b"\xff\x00\xfe"

    def test_missing_file_is_empty(self, tmp_path):
        assert JsonFileStateStore(tmp_path / "nope.json").keys() == []

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{broken", encoding="utf-8")
        with pytest.raises(StoreError, match="cannot read state file"):
            JsonFileStateStore(path)

    def test_non_object_file_raises(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(StoreError):
            JsonFileStateStore(path)


class TestStateTransaction:
    """Staged writes, overlay reads, ordered commit."""

    def test_nothing_written_before_commit(self):
        store = InMemoryStateStore()
        txn = StateTransaction(store)
        txn.put("a", b"1")
        assert store.get("a") is None
        assert txn.get("a") == b"1"

    def test_reads_fall_through_to_store(self):
        store = InMemoryStateStore(initial={"a": b"old"})
        assert StateTransaction(store).get("a") == b"old"

    def test_commit_order_is_staging_order(self):
        store = InMemoryStateStore()
        txn = StateTransaction(store)
        for key in ("owner", "index", "survey"):
            txn.put(key, key.encode())
        receipts = txn.commit()
        assert [r.key for r in receipts] == ["owner", "index", "survey"]
        assert [r.sequence for r in receipts] == [0, 1, 2]
        assert store.get_versioned("owner").version < store.get_versioned("survey").version

    def test_restage_keeps_first_position(self):
        txn = StateTransaction(InMemoryStateStore())
        txn.put("a", b"1")
        txn.put("b", b"2")
        txn.put("a", b"3")
        assert txn.pending == [("a", b"3"), ("b", b"2")]

    def test_failure_reports_landed_keys(self):
        store = InMemoryStateStore(fail_on={"second"})
        txn = StateTransaction(store)
        txn.put("first", b"1")
        txn.put("second", b"2")
        txn.put("third", b"3")

        with pytest.raises(StoreWriteError) as exc_info:
            txn.commit()

        err = exc_info.value
        assert err.key == "second"
        assert err.landed == ["first"]
        assert isinstance(err.cause, StoreError)
        assert store.get("first") == b"1"
        assert store.get("third") is None

    def test_double_commit_rejected(self):
        txn = StateTransaction(InMemoryStateStore())
        txn.commit()
        with pytest.raises(RuntimeError):
            txn.commit()
        with pytest.raises(RuntimeError):
            txn.put("a", b"1")
