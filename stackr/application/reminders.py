"""
Payment reminders: pull-based sweep that turns due reminders into
payment_reminder notifications and reschedules them.
"""
import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable

from stackr.application.notifications import NotificationSink
from stackr.domain.notification import NotificationType, typed_defaults
from stackr.domain.reminder import Reminder, ReminderFrequency, next_occurrence
from stackr.infrastructure.store import REMINDERS, UserStateStore
from stackr.utils.dates import parse_datetime, utcnow

logger = logging.getLogger(__name__)


class ReminderService:

    def __init__(self, store: UserStateStore, sink: NotificationSink, clock: Callable = utcnow):
        self._store = store
        self._sink = sink
        self._clock = clock

    def _load(self, user_id: str) -> list[Reminder]:
        return [Reminder.from_dict(d) for d in self._store.get(REMINDERS, user_id, [])]

    def _save(self, user_id: str, reminders: list[Reminder]) -> None:
        self._store.put(REMINDERS, user_id, [r.to_dict() for r in reminders])

    def add(
        self,
        user_id: str,
        title: str,
        next_reminder_date: datetime | str,
        frequency: ReminderFrequency | str = ReminderFrequency.ONCE,
        description: str = "",
        amount: float | None = None,
        category: str | None = None,
        due_date: datetime | str | None = None,
    ) -> Reminder:
        reminder = Reminder(
            user_id=user_id,
            title=title,
            next_reminder_date=parse_datetime(next_reminder_date),
            frequency=ReminderFrequency(frequency),
            description=description,
            amount=amount,
            category=category,
            due_date=parse_datetime(due_date),
        )
        with self._store.lock(user_id):
            reminders = self._load(user_id)
            reminders.append(reminder)
            self._save(user_id, reminders)
        return reminder

    def list(self, user_id: str) -> list[Reminder]:
        return self._load(user_id)

    def _fire(self, reminder: Reminder) -> None:
        priority, channels = typed_defaults(NotificationType.PAYMENT_REMINDER)
        self._sink.create(
            reminder.user_id,
            NotificationType.PAYMENT_REMINDER,
            f"Reminder: {reminder.title}",
            reminder.description or "Your scheduled reminder is due.",
            priority=priority,
            payload=reminder.to_dict(),
            channels=channels,
        )

    def process_due(self, user_id: str, now: datetime | None = None) -> int:
        """
        Notify every due reminder, then move it to its next date (counted
        from ``now``) or mark a one-time reminder completed.
        """
        now = now or self._clock()
        processed = 0
        with self._store.lock(user_id):
            reminders = self._load(user_id)
            for i, reminder in enumerate(reminders):
                if not reminder.is_due(now):
                    continue
                try:
                    self._fire(reminder)
                except Exception:
                    logger.exception("Reminder %s failed for user_id=%s", reminder.id, user_id)
                    continue
                next_date = next_occurrence(reminder.frequency, now)
                if next_date is None:
                    reminders[i] = replace(reminder, completed=True)
                else:
                    reminders[i] = replace(reminder, next_reminder_date=next_date)
                processed += 1
            if processed:
                self._save(user_id, reminders)
        if processed:
            logger.info("Processed %d due reminders for user_id=%s", processed, user_id)
        return processed
