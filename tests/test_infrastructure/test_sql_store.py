"""
Tests for the SQLAlchemy-backed user state store
"""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from stackr.application.notifications import NotificationService
from stackr.domain.guardrail import Transaction
from stackr.domain.notification import NotificationType
from stackr.infrastructure.db.models import SpendingTransactionRow, UserStateRow
from stackr.infrastructure.sql_store import SqlStore

USER = "user-1"


@pytest.fixture
def sql_store(db_engine):
    return SqlStore(db_engine)


def _at(day: int, hour: int = 10) -> datetime:
    return datetime(2026, 3, day, hour, 0, tzinfo=timezone.utc)


def test_put_get_and_update(sql_store):
    assert sql_store.get("achievements", USER, {"empty": True}) == {"empty": True}
    sql_store.put("achievements", USER, {"stats": {"totalSaved": 10}})
    sql_store.put("achievements", USER, {"stats": {"totalSaved": 20}})
    assert sql_store.get("achievements", USER) == {"stats": {"totalSaved": 20}}


def test_rows_are_keyed_by_user_and_namespace(sql_store, db_session):
    sql_store.put("reminders", USER, [])
    sql_store.put("scorecards", USER, [])
    rows = db_session.scalars(select(UserStateRow).where(UserStateRow.user_id == USER)).all()
    assert sorted(r.namespace for r in rows) == ["reminders", "scorecards"]


def test_delete_and_user_ids(sql_store):
    sql_store.put("notifications", "b", [])
    sql_store.put("notifications", "a", [])
    sql_store.delete("notifications", "b")
    sql_store.delete("notifications", "missing")
    assert sql_store.user_ids("notifications") == ["a"]


def test_transactions_round_trip(sql_store, db_session):
    tx = Transaction("Dining", -42.5, _at(5), description="Pizza")
    sql_store.add_transaction(USER, tx)

    [loaded] = sql_store.fetch_transactions(USER, _at(1), _at(31))
    assert loaded.id == tx.id
    assert loaded.amount == -42.5
    assert loaded.description == "Pizza"
    assert loaded.date == tx.date
    assert db_session.get(SpendingTransactionRow, tx.id).user_id == USER


def test_fetch_transactions_range(sql_store):
    for day in (3, 10, 20):
        sql_store.add_transaction(USER, Transaction("Dining", -day, _at(day)))
    sql_store.add_transaction("other", Transaction("Dining", -1, _at(10)))

    found = sql_store.fetch_transactions(USER, _at(3), _at(10))
    assert [t.amount for t in found] == [-3.0, -10.0]


def test_offset_timestamps_are_stored_as_utc(sql_store):
    local = datetime(2026, 3, 5, 12, 0, tzinfo=timezone(timedelta(hours=3)))
    sql_store.add_transaction(USER, Transaction("Dining", -5, local))
    [loaded] = sql_store.fetch_transactions(USER, _at(5, 0), _at(5, 23))
    assert loaded.date == _at(5, 9)


def test_notification_service_over_sql(sql_store):
    service = NotificationService(sql_store)
    n = service.create(USER, NotificationType.SYSTEM, "Hello", "World")
    assert service.has_unread(USER) is True
    service.mark_read(USER, n.id)
    assert service.has_unread(USER) is False
    assert service.list_all(USER)[0].read is True
