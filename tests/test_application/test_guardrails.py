"""
Tests for the guardrails monitor
"""
from datetime import datetime, timezone

import pytest

from stackr.domain.guardrail import Transaction
from stackr.domain.notification import NotificationType
from stackr.exceptions import InvalidTransactionError
from stackr.application.guardrails import validate_expense

USER = "user-1"
DINING_LIMIT = {"category": "Dining", "amount": "300", "period": "monthly"}


def _at(day: int, hour: int = 10) -> datetime:
    return datetime(2026, 3, day, hour, 0, tzinfo=timezone.utc)


@pytest.fixture
def dining_spend(store):
    """260 already spent on Dining this month."""
    store.add_transaction(USER, Transaction("Dining", -160, _at(5)))
    store.add_transaction(USER, Transaction("Dining", -100, _at(10)))


def test_exceeding_limit_sends_one_alert(guardrails, notifications, dining_spend):
    alerts = guardrails.check_transaction(USER, {"category": "Dining", "amount": -50, "date": _at(18)},
                                          [DINING_LIMIT])
    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.type == NotificationType.SPENDING_ALERT
    assert alert.title == "Dining spending limit exceeded!"
    assert alert.message == "You've exceeded your monthly Dining budget by $10.00."
    assert alert.payload["overage"] == 10.0
    assert alert.payload["totalSpending"] == 310.0
    assert alert.channels.send_email is True
    assert alert.channels.send_push is True
    assert notifications.list_all(USER) == alerts


def test_approaching_limit_is_in_app_only(guardrails, store):
    store.add_transaction(USER, Transaction("Dining", -200, _at(5)))
    [alert] = guardrails.check_transaction(USER, Transaction("Dining", -45, _at(18)), [DINING_LIMIT])
    assert alert.title == "Approaching Dining spending limit"
    assert alert.message == "You've used 82% of your monthly Dining budget. $55.00 remaining."
    assert alert.payload["percentUsed"] == 82
    assert alert.payload["remaining"] == 55.0
    assert alert.channels.send_email is False
    assert alert.channels.send_push is False


def test_below_warning_ratio_is_silent(guardrails, notifications):
    assert guardrails.check_transaction(USER, Transaction("Dining", -50, _at(18)), [DINING_LIMIT]) == []
    assert notifications.list_all(USER) == []


def test_category_match_is_case_insensitive(guardrails, dining_spend):
    limit = {**DINING_LIMIT, "category": "dining"}
    alerts = guardrails.check_transaction(USER, Transaction("DINING", -50, _at(18)), [limit])
    assert len(alerts) == 1


def test_no_matching_limit(guardrails, dining_spend):
    assert guardrails.check_transaction(USER, Transaction("Travel", -500, _at(18)), [DINING_LIMIT]) == []


def test_last_month_spend_is_ignored(guardrails, store):
    store.add_transaction(USER, Transaction("Dining", -290, datetime(2026, 2, 27, tzinfo=timezone.utc)))
    assert guardrails.check_transaction(USER, Transaction("Dining", -20, _at(18)), [DINING_LIMIT]) == []


def test_weekly_limit_uses_trailing_week(guardrails, store):
    store.add_transaction(USER, Transaction("Dining", -90, _at(5)))
    store.add_transaction(USER, Transaction("Dining", -60, _at(15)))
    limit = {"category": "Dining", "amount": 100, "period": "weekly"}
    assert guardrails.period_spend(USER, "Dining", "weekly") == 60
    assert guardrails.check_transaction(USER, Transaction("Dining", -10, _at(18)), [limit]) == []


def test_repeated_checks_notify_again(guardrails, notifications, dining_spend):
    tx = Transaction("Dining", -50, _at(18))
    guardrails.check_transaction(USER, tx, [DINING_LIMIT])
    guardrails.check_transaction(USER, tx, [DINING_LIMIT])
    assert len(notifications.list_all(USER)) == 2


def test_check_all_uses_period_spend(guardrails, store):
    store.add_transaction(USER, Transaction("Dining", -310, _at(5)))
    store.add_transaction(USER, Transaction("Groceries", -10, _at(5)))
    limits = [DINING_LIMIT, {"category": "Groceries", "amount": 400}]
    [alert] = guardrails.check_all(USER, limits)
    assert alert.title == "Dining spending limit exceeded!"
    assert alert.payload["transaction"]["amount"] == 0.0


class TestRecordTransaction:

    def test_records_and_alerts(self, guardrails, store, dining_spend):
        result = guardrails.record_transaction(USER, Transaction("Dining", -50, _at(18)), [DINING_LIMIT])
        assert result.accepted is True
        assert len(result.alerts) == 1
        assert guardrails.period_spend(USER, "Dining", "monthly") == 310

    def test_rejects_positive_amount(self, guardrails, store):
        result = guardrails.record_transaction(USER, Transaction("Dining", 50, _at(18)), [DINING_LIMIT])
        assert result.accepted is False
        assert result.reason == "Spending transactions must have a negative amount"
        assert store.fetch_transactions(USER, _at(1), _at(31)) == []

    def test_rejects_missing_category(self, guardrails):
        result = guardrails.record_transaction(USER, {"amount": -10, "date": _at(18)}, [DINING_LIMIT])
        assert result.accepted is False
        assert result.reason == "Transaction category is required"

    def test_rejects_missing_user(self, guardrails):
        result = guardrails.record_transaction("", Transaction("Dining", -10, _at(18)), [DINING_LIMIT])
        assert result == guardrails.record_transaction(None, Transaction("Dining", -10, _at(18)), [])
        assert result.accepted is False


def test_validate_expense_raises():
    with pytest.raises(InvalidTransactionError):
        validate_expense(Transaction("Dining", 0))


def test_spending_summary(guardrails, dining_spend):
    summary = guardrails.spending_summary(USER, [DINING_LIMIT, {"category": "Travel", "amount": 500}])
    dining, travel = summary["limits"]
    assert dining == {
        "category": "Dining",
        "period": "monthly",
        "spent": 260.0,
        "limit": 300.0,
        "percentage": 86.7,
        "status": "warning",
    }
    assert travel["status"] == "safe"
    assert summary["totalSpent"] == 260.0
    assert summary["totalLimit"] == 800.0
