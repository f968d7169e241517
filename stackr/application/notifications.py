"""
Notification store & service.

Architecture:
- Per-user ordered notification list in the store (namespace "notifications")
- Unread index (namespace "notification_unread"): a per-user flag kept in
  step with the ``read`` flags so badge queries never scan the list
- Email / push dispatch is best-effort after the record is persisted;
  transport failures are logged and never undo the creation
- Typed constructors (achievement, payment_reminder, goal_progress,
  financial_summary, spending_alert) carry the default delivery policy
"""
import logging
from typing import Any, Callable, Protocol

from stackr.domain.notification import (
    Channels,
    Notification,
    NotificationPriority,
    NotificationType,
    new_notification_id,
    typed_defaults,
)
from stackr.infrastructure.store import NOTIFICATION_UNREAD, NOTIFICATIONS, UserStateStore
from stackr.utils.dates import utcnow

logger = logging.getLogger(__name__)


class Transport(Protocol):
    def send(self, user_id: str, notification: Notification) -> bool: ...


class NotificationSink(Protocol):
    """What producers depend on: only the ability to create a notification."""

    def create(
        self,
        user_id: str,
        type: NotificationType,
        title: str,
        message: str,
        priority: NotificationPriority | None = None,
        payload: dict[str, Any] | None = None,
        channels: Channels | dict | None = None,
    ) -> Notification: ...


class NotificationService:

    def __init__(
        self,
        store: UserStateStore,
        email: Transport | None = None,
        push: Transport | None = None,
        clock: Callable = utcnow,
    ):
        self._store = store
        self._email = email
        self._push = push
        self._clock = clock

    # -- persistence helpers ----------------------------------------------------

    def _load(self, user_id: str) -> list[Notification]:
        return [Notification.from_dict(d) for d in self._store.get(NOTIFICATIONS, user_id, [])]

    def _save(self, user_id: str, items: list[Notification]) -> None:
        self._store.put(NOTIFICATIONS, user_id, [n.to_dict() for n in items])

    def _set_unread(self, user_id: str, flag: bool) -> None:
        if flag:
            self._store.put(NOTIFICATION_UNREAD, user_id, True)
        else:
            self._store.delete(NOTIFICATION_UNREAD, user_id)

    # -- contract -----------------------------------------------------------------

    def create(
        self,
        user_id: str,
        type: NotificationType,
        title: str,
        message: str,
        priority: NotificationPriority | None = None,
        payload: dict[str, Any] | None = None,
        channels: Channels | dict | None = None,
    ) -> Notification:
        """Always succeeds; empty title or message are stored as given."""
        if isinstance(channels, dict):
            channels = Channels.from_dict(channels)
        notification = Notification(
            id=new_notification_id(),
            user_id=user_id,
            type=NotificationType(type),
            title=title,
            message=message,
            priority=NotificationPriority(priority) if priority else NotificationPriority.MEDIUM,
            payload=dict(payload or {}),
            channels=channels or Channels(),
            created_at=self._clock(),
        )
        with self._store.lock(user_id):
            items = self._load(user_id)
            items.append(notification)
            self._save(user_id, items)
            self._set_unread(user_id, True)

        self._dispatch(user_id, notification)
        return notification

    def _dispatch(self, user_id: str, notification: Notification) -> None:
        targets = []
        if notification.channels.send_email:
            targets.append(("email", self._email))
        if notification.channels.send_push:
            targets.append(("push", self._push))
        for channel, transport in targets:
            if transport is None:
                logger.debug("No %s transport configured, skipping %s", channel, notification.id)
                continue
            try:
                transport.send(user_id, notification)
            except Exception:
                logger.exception("%s dispatch failed for user_id=%s notification=%s",
                                 channel, user_id, notification.id)

    def list_all(self, user_id: str) -> list[Notification]:
        """Insertion order; callers sort by created_at for display."""
        return self._load(user_id)

    def list_unread(self, user_id: str) -> list[Notification]:
        return [n for n in self._load(user_id) if not n.read]

    def has_unread(self, user_id: str) -> bool:
        return bool(self._store.get(NOTIFICATION_UNREAD, user_id, False))

    def mark_read(self, user_id: str, notification_id: str) -> bool:
        with self._store.lock(user_id):
            items = self._load(user_id)
            for i, n in enumerate(items):
                if n.id == notification_id:
                    items[i] = n.mark_read()
                    break
            else:
                return False
            self._save(user_id, items)
            if all(n.read for n in items):
                self._set_unread(user_id, False)
            return True

    def mark_all_read(self, user_id: str) -> int:
        with self._store.lock(user_id):
            items = self._load(user_id)
            count = sum(1 for n in items if not n.read)
            if count:
                self._save(user_id, [n if n.read else n.mark_read() for n in items])
            self._set_unread(user_id, False)
            return count

    def dismiss(self, user_id: str, notification_id: str) -> bool:
        """Sets ``dismissed`` only; read state and the unread index are untouched."""
        with self._store.lock(user_id):
            items = self._load(user_id)
            for i, n in enumerate(items):
                if n.id == notification_id:
                    items[i] = n.dismiss()
                    self._save(user_id, items)
                    return True
            return False

    def clear_all(self, user_id: str) -> int:
        with self._store.lock(user_id):
            count = len(self._store.get(NOTIFICATIONS, user_id, []))
            self._store.delete(NOTIFICATIONS, user_id)
            self._set_unread(user_id, False)
            return count

    # -- typed constructors -----------------------------------------------------

    def _typed(
        self,
        type_: NotificationType,
        user_id: str,
        title: str,
        message: str,
        payload: dict[str, Any] | None,
        show_in_app: bool,
        send_email: bool | None,
        send_push: bool | None,
    ) -> Notification:
        priority, channels = typed_defaults(type_, show_in_app, send_email, send_push)
        return self.create(user_id, type_, title, message, priority=priority, payload=payload, channels=channels)

    def achievement(self, user_id, title, message, payload=None, show_in_app=True, send_email=None, send_push=None):
        return self._typed(NotificationType.ACHIEVEMENT, user_id, title, message, payload,
                           show_in_app, send_email, send_push)

    def payment_reminder(self, user_id, title, message, payload=None, show_in_app=True, send_email=None,
                         send_push=None):
        return self._typed(NotificationType.PAYMENT_REMINDER, user_id, title, message, payload,
                           show_in_app, send_email, send_push)

    def goal_progress(self, user_id, title, message, payload=None, show_in_app=True, send_email=None,
                      send_push=None):
        return self._typed(NotificationType.GOAL_PROGRESS, user_id, title, message, payload,
                           show_in_app, send_email, send_push)

    def financial_summary(self, user_id, title, message, payload=None, show_in_app=True, send_email=None,
                          send_push=None):
        return self._typed(NotificationType.FINANCIAL_SUMMARY, user_id, title, message, payload,
                           show_in_app, send_email, send_push)

    def spending_alert(self, user_id, title, message, payload=None, show_in_app=True, send_email=None,
                       send_push=None):
        return self._typed(NotificationType.SPENDING_ALERT, user_id, title, message, payload,
                           show_in_app, send_email, send_push)
