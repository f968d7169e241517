"""
Wiring: builds the store, transports and every service from settings.

    services = build_services()
    services.guardrails.record_transaction(user_id, tx, limits)
"""
import logging
from dataclasses import dataclass

from stackr.application.achievements import AchievementEngine
from stackr.application.guardrails import GuardrailsMonitor
from stackr.application.notifications import NotificationService
from stackr.application.reminders import ReminderService
from stackr.application.scorecard import ScorecardService, SnapshotSource, StaticSnapshotSource
from stackr.application.summaries import FinancialSummaryGenerator
from stackr.config import Settings, get_settings
from stackr.infrastructure.store import (
    ACHIEVEMENTS,
    NOTIFICATIONS,
    REMINDERS,
    SCORECARDS,
    UserStateStore,
    build_store,
)
from stackr.infrastructure.transports import AddressLookup, EmailTransport, LoggingTransport, WebPushTransport

logger = logging.getLogger(__name__)


@dataclass
class Services:
    store: UserStateStore
    snapshots: SnapshotSource
    notifications: NotificationService
    achievements: AchievementEngine
    guardrails: GuardrailsMonitor
    summaries: FinancialSummaryGenerator
    scorecards: ScorecardService
    reminders: ReminderService

    def known_user_ids(self) -> list[str]:
        users: set[str] = set()
        for namespace in (NOTIFICATIONS, ACHIEVEMENTS, REMINDERS, SCORECARDS):
            users.update(self.store.user_ids(namespace))
        return sorted(users)


def build_services(
    settings: Settings | None = None,
    store: UserStateStore | None = None,
    snapshots: SnapshotSource | None = None,
    address_lookup: AddressLookup | None = None,
) -> Services:
    settings = settings or get_settings()
    store = store or build_store(settings)
    snapshots = snapshots or StaticSnapshotSource()
    email = EmailTransport(address_lookup, settings) if address_lookup else LoggingTransport("email")
    notifications = NotificationService(
        store,
        email=email,
        push=WebPushTransport(store, settings),
    )
    logger.debug("Services built with %s store", type(store).__name__)
    return Services(
        store=store,
        snapshots=snapshots,
        notifications=notifications,
        achievements=AchievementEngine(store, notifications),
        guardrails=GuardrailsMonitor(store, notifications),
        summaries=FinancialSummaryGenerator(store, notifications),
        scorecards=ScorecardService(store, notifications, snapshots),
        reminders=ReminderService(store, notifications),
    )
