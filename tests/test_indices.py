"""
Owner / survey index maintenance tests.

Run with: pytest tests/test_indices.py -v
"""

from landledger.codec import encode_index
from landledger.indices import (
    add_owner_to_index,
    add_survey_to_index,
    read_owner_index,
    read_survey_index,
    reset_indices,
)
from landledger.store import InMemoryStateStore, StateTransaction

OWNERS = "_ownerIndex"
SURVEYS = "_surveyIndex"


class TestOwnerIndex:

    def test_absent_index_starts_empty(self):
        store = InMemoryStateStore()
        txn = StateTransaction(store)
        assert add_owner_to_index(txn, OWNERS, "alice") is True
        txn.commit()
        assert read_owner_index(store, OWNERS) == ["alice"]

    def test_idempotent(self):
        store = InMemoryStateStore()
        txn = StateTransaction(store)
        add_owner_to_index(txn, OWNERS, "alice")
        add_owner_to_index(txn, OWNERS, "bob")
        assert add_owner_to_index(txn, OWNERS, "alice") is False
        txn.commit()
        assert read_owner_index(store, OWNERS) == ["alice", "bob"]

    def test_noop_stages_nothing(self):
        store = InMemoryStateStore(initial={OWNERS: encode_index(["alice"])})
        txn = StateTransaction(store)
        add_owner_to_index(txn, OWNERS, "alice")
        assert txn.pending_keys == []

    def test_corrupt_index_treated_as_empty(self):
        store = InMemoryStateStore(initial={OWNERS: b"{not json"})
        txn = StateTransaction(store)
        add_owner_to_index(txn, OWNERS, "carol")
        txn.commit()
        assert read_owner_index(store, OWNERS) == ["carol"]

    def test_not_durable_until_commit(self):
        store = InMemoryStateStore()
        txn = StateTransaction(store)
        add_owner_to_index(txn, OWNERS, "alice")
        assert read_owner_index(store, OWNERS) == []


class TestSurveyIndex:

    def test_appends_in_order(self):
        store = InMemoryStateStore()
        txn = StateTransaction(store)
        for n in (103, 101, 102):
            add_survey_to_index(txn, SURVEYS, n)
        txn.commit()
        assert read_survey_index(store, SURVEYS) == [103, 101, 102]

    def test_duplicate_not_appended(self):
        store = InMemoryStateStore(initial={SURVEYS: encode_index([101])})
        txn = StateTransaction(store)
        assert add_survey_to_index(txn, SURVEYS, 101) is False
        assert txn.pending_keys == []


class TestReset:

    def test_reset_writes_empty_arrays(self):
        store = InMemoryStateStore(initial={
            OWNERS: encode_index(["alice"]),
            SURVEYS: encode_index([1]),
        })
        txn = StateTransaction(store)
        reset_indices(txn, OWNERS, SURVEYS)
        txn.commit()
        assert store.get(OWNERS) == b"[]"
        assert store.get(SURVEYS) == b"[]"
