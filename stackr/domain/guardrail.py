"""Spending limits, transactions and the threshold predicates used by the guardrails monitor."""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo
from enum import Enum
from typing import Any

from stackr.utils.dates import parse_datetime, start_of_month, to_iso, utcnow
from stackr.utils.money import to_amount


class LimitPeriod(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class SpendingLimit:
    category: str
    amount: float
    period: LimitPeriod = LimitPeriod.MONTHLY
    is_exceeded: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SpendingLimit":
        # amounts arrive as strings from form input ("300")
        return cls(
            category=str(data.get("category") or ""),
            amount=to_amount(data.get("amount")),
            period=LimitPeriod(data.get("period") or "monthly"),
            is_exceeded=bool(data.get("isExceeded", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "amount": self.amount,
            "period": self.period.value,
            "isExceeded": self.is_exceeded,
        }

    def matches(self, category: str | None) -> bool:
        return bool(category) and self.category.lower() == str(category).lower()


@dataclass(frozen=True)
class Transaction:
    """Negative amounts are expenses, positive amounts are income."""
    category: str
    amount: float
    date: datetime = field(default_factory=utcnow)
    description: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Transaction":
        return cls(
            category=str(data.get("category") or ""),
            amount=to_amount(data.get("amount")),
            date=parse_datetime(data.get("date")) or utcnow(),
            description=data.get("description") or "",
            id=data.get("id") or uuid.uuid4().hex,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "category": self.category,
            "amount": self.amount,
            "date": to_iso(self.date),
            "description": self.description,
        }


def period_window(period: LimitPeriod, now: datetime, tz: tzinfo | None = None) -> tuple[datetime, datetime]:
    """
    weekly  -> trailing 7 days ending at ``now``
    monthly -> calendar month to date, month boundary taken in ``tz``
    """
    if period == LimitPeriod.WEEKLY:
        return now - timedelta(days=7), now
    local = now.astimezone(tz) if tz is not None else now
    return start_of_month(local), now


def is_approaching(spent: float, limit: float, warning_ratio: float = 0.8) -> bool:
    return warning_ratio * limit <= spent < limit


def is_exceeded(spent: float, limit: float) -> bool:
    return spent >= limit


def spending_status(spent: float, limit: float, warning_ratio: float = 0.8) -> str:
    if limit > 0 and is_exceeded(spent, limit):
        return "over"
    if limit > 0 and is_approaching(spent, limit, warning_ratio):
        return "warning"
    return "safe"


def sum_category(transactions, category: str) -> float:
    """Absolute spend of the transactions whose category matches case-insensitively."""
    wanted = category.lower()
    return sum(abs(t.amount) for t in transactions if (t.category or "").lower() == wanted)
