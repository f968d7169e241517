"""
Notification domain types.

A Notification is immutable once created except for the ``read`` and
``dismissed`` flags, which only change through ``mark_read`` / ``dismiss``
(both return a new instance).
"""
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from stackr.utils.dates import parse_datetime, to_iso, utcnow


class NotificationType(str, Enum):
    ACHIEVEMENT = "achievement"
    PAYMENT_REMINDER = "payment_reminder"
    GOAL_PROGRESS = "goal_progress"
    FINANCIAL_SUMMARY = "financial_summary"
    SAVINGS_MILESTONE = "savings_milestone"
    SPENDING_ALERT = "spending_alert"
    SYSTEM = "system"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


@dataclass(frozen=True)
class Channels:
    """Independent delivery flags. The unread state does not depend on them."""
    show_in_app: bool = True
    send_email: bool = False
    send_push: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {
            "showInApp": self.show_in_app,
            "sendEmail": self.send_email,
            "sendPush": self.send_push,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "Channels":
        data = data or {}
        return cls(
            show_in_app=bool(data.get("showInApp", True)),
            send_email=bool(data.get("sendEmail", False)),
            send_push=bool(data.get("sendPush", False)),
        )


# Delivery policy per typed constructor: (priority, send_email, send_push)
DEFAULT_POLICY: dict[NotificationType, tuple[NotificationPriority, bool, bool]] = {
    NotificationType.ACHIEVEMENT: (NotificationPriority.MEDIUM, False, False),
    NotificationType.PAYMENT_REMINDER: (NotificationPriority.HIGH, True, False),
    NotificationType.GOAL_PROGRESS: (NotificationPriority.MEDIUM, False, False),
    NotificationType.FINANCIAL_SUMMARY: (NotificationPriority.LOW, True, False),
    NotificationType.SPENDING_ALERT: (NotificationPriority.HIGH, False, True),
}


def new_notification_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Notification:
    id: str
    user_id: str
    type: NotificationType
    title: str
    message: str
    priority: NotificationPriority = NotificationPriority.MEDIUM
    payload: dict[str, Any] = field(default_factory=dict)
    channels: Channels = field(default_factory=Channels)
    read: bool = False
    dismissed: bool = False
    created_at: datetime = field(default_factory=utcnow)

    def mark_read(self) -> "Notification":
        return replace(self, read=True)

    def dismiss(self) -> "Notification":
        return replace(self, dismissed=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "priority": self.priority.value,
            "payload": self.payload,
            "channels": self.channels.to_dict(),
            "read": self.read,
            "dismissed": self.dismissed,
            "createdAt": to_iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Notification":
        return cls(
            id=data["id"],
            user_id=data["userId"],
            type=NotificationType(data["type"]),
            title=data.get("title", ""),
            message=data.get("message", ""),
            priority=NotificationPriority(data.get("priority", "medium")),
            payload=data.get("payload") or {},
            channels=Channels.from_dict(data.get("channels")),
            read=bool(data.get("read", False)),
            dismissed=bool(data.get("dismissed", False)),
            created_at=parse_datetime(data.get("createdAt")) or utcnow(),
        )


def typed_defaults(
    type_: NotificationType,
    show_in_app: bool = True,
    send_email: bool | None = None,
    send_push: bool | None = None,
) -> tuple[NotificationPriority, Channels]:
    """Priority and channels for a typed notification, with optional overrides."""
    priority, default_email, default_push = DEFAULT_POLICY[type_]
    return priority, Channels(
        show_in_app=show_in_app,
        send_email=default_email if send_email is None else send_email,
        send_push=default_push if send_push is None else send_push,
    )
