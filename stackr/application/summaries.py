"""
Financial summary generator: weekly / monthly reports delivered as
financial_summary notifications.

Callers either pass ready income/expense records (``weekly`` / ``monthly``)
or let the generator build them from the transaction source
(``weekly_from_transactions`` / ``monthly_from_transactions``).
"""
import logging
from datetime import datetime, timedelta, tzinfo
from typing import Any, Callable
from zoneinfo import ZoneInfo

from stackr.application.notifications import NotificationSink
from stackr.config import get_settings
from stackr.domain.guardrail import Transaction
from stackr.domain.notification import NotificationType, typed_defaults
from stackr.domain.summary import (
    FinancialSummary,
    PeriodRecords,
    build_monthly,
    build_weekly,
    monthly_message,
    weekly_message,
)
from stackr.infrastructure.store import UserStateStore
from stackr.utils.dates import add_months, start_of_month, utcnow

logger = logging.getLogger(__name__)


def split_transactions(transactions: list[Transaction]) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Positive amounts are income; negative amounts become positive expenses."""
    income = [
        {"category": t.category, "description": t.description, "amount": t.amount}
        for t in transactions if t.amount > 0
    ]
    expenses = [
        {"category": t.category, "description": t.description, "amount": abs(t.amount)}
        for t in transactions if t.amount < 0
    ]
    return income, expenses


def _as_records(data: PeriodRecords | dict[str, Any] | None) -> PeriodRecords | None:
    if data is None or isinstance(data, PeriodRecords):
        return data
    return PeriodRecords(
        income=list(data.get("income") or []),
        expenses=list(data.get("expenses") or []),
        start_date=data.get("startDate"),
        end_date=data.get("endDate"),
        month=data.get("month"),
        year=data.get("year"),
        goals=list(data.get("goals") or []),
    )


class FinancialSummaryGenerator:

    def __init__(
        self,
        store: UserStateStore,
        sink: NotificationSink,
        clock: Callable = utcnow,
        tz: tzinfo | None = None,
    ):
        self._store = store
        self._sink = sink
        self._clock = clock
        self._tz = tz or ZoneInfo(get_settings().TIMEZONE)

    def _notify(self, user_id: str, title: str, summary: FinancialSummary, message: str) -> None:
        priority, channels = typed_defaults(NotificationType.FINANCIAL_SUMMARY)
        self._sink.create(
            user_id,
            NotificationType.FINANCIAL_SUMMARY,
            title,
            message,
            priority=priority,
            payload=summary.to_dict(),
            channels=channels,
        )

    def weekly(self, user_id: str, data: PeriodRecords | dict[str, Any]) -> FinancialSummary:
        summary = build_weekly(_as_records(data))
        self._notify(user_id, "Your Weekly Financial Summary", summary, weekly_message(summary))
        logger.info("Weekly summary sent to user_id=%s", user_id)
        return summary

    def monthly(
        self,
        user_id: str,
        data: PeriodRecords | dict[str, Any],
        previous: PeriodRecords | dict[str, Any] | None = None,
    ) -> FinancialSummary:
        summary = build_monthly(_as_records(data), _as_records(previous))
        self._notify(
            user_id,
            f"Your {summary.month} {summary.year} Financial Summary",
            summary,
            monthly_message(summary),
        )
        logger.info("Monthly summary sent to user_id=%s", user_id)
        return summary

    # -- transaction-backed variants ---------------------------------------------

    def weekly_from_transactions(self, user_id: str, now: datetime | None = None) -> FinancialSummary:
        end = now or self._clock()
        start = end - timedelta(days=7)
        income, expenses = split_transactions(self._store.fetch_transactions(user_id, start, end))
        records = PeriodRecords(
            income=income,
            expenses=expenses,
            start_date=start.isoformat(),
            end_date=end.isoformat(),
        )
        return self.weekly(user_id, records)

    def monthly_from_transactions(self, user_id: str, now: datetime | None = None) -> FinancialSummary:
        """Month to date, compared against the whole previous calendar month."""
        end = now or self._clock()
        month_start = start_of_month(end.astimezone(self._tz))
        prev_start = add_months(month_start, -1)

        income, expenses = split_transactions(self._store.fetch_transactions(user_id, month_start, end))
        prev_income, prev_expenses = split_transactions(
            self._store.fetch_transactions(user_id, prev_start, month_start - timedelta(microseconds=1))
        )
        current = PeriodRecords(
            income=income,
            expenses=expenses,
            month=month_start.strftime("%B"),
            year=month_start.year,
        )
        previous = PeriodRecords(income=prev_income, expenses=prev_expenses)
        return self.monthly(user_id, current, previous)
