"""
Tests for the in-memory user state store
"""
import threading
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from stackr.config import Settings
from stackr.domain.guardrail import Transaction
from stackr.infrastructure.sql_store import SqlStore
from stackr.infrastructure.store import InMemoryStore, UserLocks, build_store

USER = "user-1"


def _at(day: int) -> datetime:
    return datetime(2026, 3, day, tzinfo=timezone.utc)


def test_get_missing_returns_default(store):
    assert store.get("notifications", USER) is None
    assert store.get("notifications", USER, []) == []


def test_values_are_copied(store):
    value = [{"id": "n1"}]
    store.put("notifications", USER, value)
    value.append({"id": "n2"})
    loaded = store.get("notifications", USER)
    loaded.append({"id": "n3"})
    assert store.get("notifications", USER) == [{"id": "n1"}]


def test_delete_and_user_ids(store):
    store.put("reminders", "b", [])
    store.put("reminders", "a", [])
    assert store.user_ids("reminders") == ["a", "b"]
    store.delete("reminders", "a")
    store.delete("reminders", "missing")
    assert store.user_ids("reminders") == ["b"]


def test_fetch_transactions_is_inclusive_and_sorted(store):
    store.add_transaction(USER, Transaction("Dining", -10, _at(10)))
    store.add_transaction(USER, Transaction("Dining", -20, _at(1)))
    store.add_transaction(USER, Transaction("Dining", -30, _at(20)))
    found = store.fetch_transactions(USER, _at(1), _at(10))
    assert [t.amount for t in found] == [-20, -10]
    assert store.fetch_transactions("other", _at(1), _at(31)) == []


def test_lock_is_reentrant(store):
    with store.lock(USER):
        with store.lock(USER):
            store.put("achievements", USER, {})
    assert store.get("achievements", USER) == {}


def test_user_locks_are_per_user():
    locks = UserLocks()
    assert locks.get("a") is locks.get("a")
    assert locks.get("a") is not locks.get("b")


def test_user_locks_drop_idle_entries():
    locks = UserLocks()
    held = locks.get("a")
    for i in range(100):
        with locks.get(f"user-{i}"):
            pass
    assert len(locks) == 1
    assert locks.get("a") is held
    del held
    assert len(locks) == 0


def test_concurrent_writers_do_not_lose_updates(store):
    def append_many():
        for _ in range(50):
            with store.lock(USER):
                items = store.get("notifications", USER, [])
                items.append(1)
                store.put("notifications", USER, items)

    threads = [threading.Thread(target=append_many) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(store.get("notifications", USER)) == 200


class TestBuildStore:

    def test_memory_backend(self):
        assert isinstance(build_store(Settings(_env_file=None, STORE_BACKEND="memory")), InMemoryStore)

    def test_sql_backend(self, db_engine):
        with patch("stackr.infrastructure.db.session.get_engine", return_value=db_engine):
            store = build_store(Settings(_env_file=None, STORE_BACKEND="sql"))
        assert isinstance(store, SqlStore)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            build_store(Settings(_env_file=None, STORE_BACKEND="redis"))
