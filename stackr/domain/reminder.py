"""Payment reminder entity and recurrence stepping."""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from stackr.utils.dates import add_months, parse_datetime, to_iso
from stackr.utils.money import to_amount


class ReminderFrequency(str, Enum):
    ONCE = "once"
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


_DAY_STEPS = {
    ReminderFrequency.DAILY: 1,
    ReminderFrequency.WEEKLY: 7,
    ReminderFrequency.BIWEEKLY: 14,
}
_MONTH_STEPS = {
    ReminderFrequency.MONTHLY: 1,
    ReminderFrequency.QUARTERLY: 3,
    ReminderFrequency.YEARLY: 12,
}


def next_occurrence(frequency: ReminderFrequency, after: datetime) -> datetime | None:
    """Next fire time counted from ``after``; None for one-time reminders."""
    if frequency in _DAY_STEPS:
        return after + timedelta(days=_DAY_STEPS[frequency])
    if frequency in _MONTH_STEPS:
        return add_months(after, _MONTH_STEPS[frequency])
    return None


@dataclass(frozen=True)
class Reminder:
    user_id: str
    title: str
    next_reminder_date: datetime
    frequency: ReminderFrequency = ReminderFrequency.ONCE
    description: str = ""
    amount: float | None = None
    category: str | None = None
    due_date: datetime | None = None
    completed: bool = False
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def is_due(self, now: datetime) -> bool:
        return not self.completed and self.next_reminder_date <= now

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "title": self.title,
            "description": self.description,
            "amount": self.amount,
            "category": self.category,
            "dueDate": to_iso(self.due_date),
            "frequency": self.frequency.value,
            "nextReminderDate": to_iso(self.next_reminder_date),
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Reminder":
        return cls(
            id=data["id"],
            user_id=data["userId"],
            title=data.get("title", ""),
            description=data.get("description") or "",
            amount=to_amount(data["amount"]) if data.get("amount") is not None else None,
            category=data.get("category"),
            due_date=parse_datetime(data.get("dueDate")),
            frequency=ReminderFrequency(data.get("frequency") or "once"),
            next_reminder_date=parse_datetime(data["nextReminderDate"]),
            completed=bool(data.get("completed", False)),
        )
