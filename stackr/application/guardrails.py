"""
Guardrails monitor: compares period spend per category against the user's
spending limits and raises spending alerts.

- approaching: warning_ratio * limit <= spent < limit (in-app only)
- exceeded:    spent >= limit (in-app, email and push)

Alerts are re-evaluated on every call; nothing remembers which threshold
already fired, so repeated checks notify again.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Any, Callable, Iterable
from zoneinfo import ZoneInfo

from stackr.application.notifications import NotificationSink
from stackr.config import get_settings
from stackr.domain.guardrail import (
    LimitPeriod,
    SpendingLimit,
    Transaction,
    is_approaching,
    is_exceeded,
    period_window,
    spending_status,
    sum_category,
)
from stackr.domain.notification import Notification, NotificationType, typed_defaults
from stackr.exceptions import InvalidTransactionError
from stackr.infrastructure.store import UserStateStore
from stackr.utils.dates import utcnow
from stackr.utils.money import round_half_up

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordResult:
    accepted: bool
    reason: str | None = None
    alerts: list[Notification] = field(default_factory=list)


def _as_transaction(transaction: Transaction | dict) -> Transaction:
    return transaction if isinstance(transaction, Transaction) else Transaction.from_dict(transaction)


def _as_limits(limits: Iterable[SpendingLimit | dict] | None) -> list[SpendingLimit]:
    return [item if isinstance(item, SpendingLimit) else SpendingLimit.from_dict(item) for item in (limits or [])]


def validate_expense(transaction: Transaction) -> None:
    if not transaction.category:
        raise InvalidTransactionError("Transaction category is required")
    if transaction.amount >= 0:
        raise InvalidTransactionError("Spending transactions must have a negative amount")


class GuardrailsMonitor:

    def __init__(
        self,
        store: UserStateStore,
        sink: NotificationSink,
        clock: Callable = utcnow,
        tz: tzinfo | None = None,
        warning_ratio: float | None = None,
    ):
        settings = get_settings()
        self._store = store
        self._sink = sink
        self._clock = clock
        self._tz = tz or ZoneInfo(settings.TIMEZONE)
        self._warning_ratio = warning_ratio if warning_ratio is not None else settings.GUARDRAIL_WARNING_RATIO

    def period_spend(self, user_id: str, category: str, period: LimitPeriod | str,
                     now: datetime | None = None) -> float:
        """Absolute spend in ``category`` for the current weekly / monthly window."""
        start, end = period_window(LimitPeriod(period), now or self._clock(), self._tz)
        return sum_category(self._store.fetch_transactions(user_id, start, end), category)

    # -- alerts -----------------------------------------------------------------

    def _evaluate(self, user_id: str, transaction: Transaction, limit: SpendingLimit) -> list[Notification]:
        spent = self.period_spend(user_id, limit.category, limit.period) + abs(transaction.amount)
        alerts = []
        if is_approaching(spent, limit.amount, self._warning_ratio):
            alerts.append(self._approaching(user_id, transaction, limit, spent))
        if is_exceeded(spent, limit.amount):
            alerts.append(self._exceeded(user_id, transaction, limit, spent))
        return alerts

    def _approaching(self, user_id, transaction: Transaction, limit: SpendingLimit, spent: float) -> Notification:
        percent_used = round_half_up(spent / limit.amount * 100) if limit.amount else 100
        remaining = limit.amount - spent
        priority, channels = typed_defaults(NotificationType.SPENDING_ALERT, send_email=False, send_push=False)
        return self._sink.create(
            user_id,
            NotificationType.SPENDING_ALERT,
            f"Approaching {limit.category} spending limit",
            f"You've used {percent_used}% of your {limit.period.value} {limit.category} budget. "
            f"${remaining:.2f} remaining.",
            priority=priority,
            payload={
                "transaction": transaction.to_dict(),
                "limit": limit.to_dict(),
                "totalSpending": spent,
                "percentUsed": percent_used,
                "remaining": remaining,
            },
            channels=channels,
        )

    def _exceeded(self, user_id, transaction: Transaction, limit: SpendingLimit, spent: float) -> Notification:
        percent_used = round_half_up(spent / limit.amount * 100) if limit.amount else 100
        overage = spent - limit.amount
        priority, channels = typed_defaults(NotificationType.SPENDING_ALERT, send_email=True, send_push=True)
        return self._sink.create(
            user_id,
            NotificationType.SPENDING_ALERT,
            f"{limit.category} spending limit exceeded!",
            f"You've exceeded your {limit.period.value} {limit.category} budget by ${overage:.2f}.",
            priority=priority,
            payload={
                "transaction": transaction.to_dict(),
                "limit": limit.to_dict(),
                "totalSpending": spent,
                "percentUsed": percent_used,
                "overage": overage,
            },
            channels=channels,
        )

    def check_transaction(self, user_id: str, transaction: Transaction | dict,
                          limits: Iterable[SpendingLimit | dict]) -> list[Notification]:
        """Alerts for the limit matching the transaction's category (case-insensitive)."""
        tx = _as_transaction(transaction)
        limit = next((item for item in _as_limits(limits) if item.matches(tx.category)), None)
        if limit is None:
            return []
        with self._store.lock(user_id):
            return self._evaluate(user_id, tx, limit)

    def check_all(self, user_id: str, limits: Iterable[SpendingLimit | dict]) -> list[Notification]:
        """Proactive sweep: every limit is checked against its current period spend."""
        alerts: list[Notification] = []
        now = self._clock()
        with self._store.lock(user_id):
            for limit in _as_limits(limits):
                reference = Transaction(category=limit.category, amount=0.0, date=now,
                                        description="Scheduled guardrail check")
                alerts.extend(self._evaluate(user_id, reference, limit))
        return alerts

    def record_transaction(self, user_id: str, transaction: Transaction | dict,
                           limits: Iterable[SpendingLimit | dict]) -> RecordResult:
        """
        Check then persist an expense. Positive amounts or a missing category
        are rejected without recording anything.
        """
        if not user_id:
            return RecordResult(False, "User id is required")
        tx = _as_transaction(transaction)
        try:
            validate_expense(tx)
        except InvalidTransactionError as e:
            logger.info("Rejected transaction for user_id=%s: %s", user_id, e)
            return RecordResult(False, str(e))
        with self._store.lock(user_id):
            alerts = self.check_transaction(user_id, tx, limits)
            self._store.add_transaction(user_id, tx)
        return RecordResult(True, alerts=alerts)

    # -- read side --------------------------------------------------------------

    def spending_summary(self, user_id: str, limits: Iterable[SpendingLimit | dict],
                         now: datetime | None = None) -> dict[str, Any]:
        now = now or self._clock()
        rows = []
        total_spent = total_limit = 0.0
        for limit in _as_limits(limits):
            spent = self.period_spend(user_id, limit.category, limit.period, now)
            percentage = spent / limit.amount * 100 if limit.amount > 0 else 0.0
            rows.append({
                "category": limit.category,
                "period": limit.period.value,
                "spent": spent,
                "limit": limit.amount,
                "percentage": round(percentage, 1),
                "status": spending_status(spent, limit.amount, self._warning_ratio),
            })
            total_spent += spent
            total_limit += limit.amount
        return {"limits": rows, "totalSpent": total_spent, "totalLimit": total_limit}
