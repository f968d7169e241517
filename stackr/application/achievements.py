"""
Achievement engine: keeps per-user achievement state in the store and emits
an achievement notification whenever an entry becomes earned.

The rules themselves are pure (stackr.domain.achievement); this service only
loads state, applies stat changes, runs ``evaluate`` and persists the result
under the user's lock.
"""
import logging
from dataclasses import replace
from datetime import tzinfo
from typing import Any, Callable
from zoneinfo import ZoneInfo

from stackr.application.notifications import NotificationSink
from stackr.config import get_settings
from stackr.domain import achievement as rules
from stackr.domain.achievement import (
    CATALOGUE,
    CATALOGUE_BY_ID,
    AchievementDefinition,
    AchievementState,
    StatsUpdate,
)
from stackr.domain.notification import NotificationType, typed_defaults
from stackr.exceptions import UnknownAchievementError
from stackr.infrastructure.store import ACHIEVEMENTS, UserStateStore
from stackr.utils.dates import utcnow
from stackr.utils.money import format_currency, to_amount

logger = logging.getLogger(__name__)


def get_definition(achievement_id: str) -> AchievementDefinition:
    try:
        return CATALOGUE_BY_ID[achievement_id]
    except KeyError:
        raise UnknownAchievementError(achievement_id) from None


class AchievementEngine:

    def __init__(
        self,
        store: UserStateStore,
        sink: NotificationSink,
        clock: Callable = utcnow,
        tz: tzinfo | None = None,
        history_limit: int | None = None,
    ):
        settings = get_settings()
        self._store = store
        self._sink = sink
        self._clock = clock
        self._tz = tz or ZoneInfo(settings.TIMEZONE)
        self._history_limit = history_limit or settings.STATS_HISTORY_LIMIT

    # -- state ------------------------------------------------------------------

    def _load(self, user_id: str) -> AchievementState | None:
        raw = self._store.get(ACHIEVEMENTS, user_id)
        return AchievementState.from_dict(raw) if raw is not None else None

    def _save(self, user_id: str, state: AchievementState) -> None:
        self._store.put(ACHIEVEMENTS, user_id, state.to_dict())

    def _state(self, user_id: str) -> AchievementState:
        state = self._load(user_id)
        if state is None:
            state = AchievementState.seed(self._clock())
            self._save(user_id, state)
        return state

    def initialize(self, user_id: str) -> AchievementState:
        """Seed state from the catalogue; existing state is left alone."""
        with self._store.lock(user_id):
            return self._state(user_id)

    def reset(self, user_id: str) -> AchievementState:
        with self._store.lock(user_id):
            state = AchievementState.seed(self._clock())
            self._save(user_id, state)
            logger.info("Achievement state reset for user_id=%s", user_id)
            return state

    # -- evaluation -------------------------------------------------------------

    def _evaluate_state(self, user_id: str, state: AchievementState) -> list[AchievementDefinition]:
        now = self._clock()
        new_state, earned = rules.evaluate(state, now, CATALOGUE)
        self._save(user_id, new_state)
        for definition in earned:
            self._notify_earned(user_id, definition, now)
        return earned

    def _notify_earned(self, user_id: str, definition: AchievementDefinition, now) -> None:
        priority, channels = typed_defaults(NotificationType.ACHIEVEMENT, send_email=definition.milestone)
        self._sink.create(
            user_id,
            NotificationType.ACHIEVEMENT,
            f"Achievement Unlocked: {definition.title}",
            f"{definition.icon} {definition.description}",
            priority=priority,
            payload={**definition.to_dict(), "earnedAt": now.isoformat()},
            channels=channels,
        )
        logger.info("Achievement %s earned by user_id=%s", definition.id, user_id)

    def evaluate(self, user_id: str, update: StatsUpdate | dict | None = None) -> list[AchievementDefinition]:
        """Merge stat changes, walk the catalogue, return newly earned entries."""
        if isinstance(update, dict):
            update = StatsUpdate.from_dict(update)
        with self._store.lock(user_id):
            state = self._state(user_id)
            stats = rules.apply_update(state.stats, update, self._clock(), self._history_limit)
            return self._evaluate_state(user_id, replace(state, stats=stats))

    def update_login_streak(self, user_id: str) -> int:
        """Counts at most once per calendar day in the configured timezone."""
        with self._store.lock(user_id):
            state = self._state(user_id)
            now = self._clock()
            streak = rules.next_login_streak(
                state.stats.login_streak,
                state.stats.last_login.astimezone(self._tz).date(),
                now.astimezone(self._tz).date(),
            )
            if streak is None:
                return state.stats.login_streak
            stats = replace(state.stats, login_streak=streak, last_login=now)
            self._evaluate_state(user_id, replace(state, stats=stats))
            return streak

    def update_budget_streak(self, user_id: str, under_budget: bool) -> int:
        with self._store.lock(user_id):
            state = self._state(user_id)
            streak = state.stats.budget_streak + 1 if under_budget else 0
            self._evaluate_state(user_id, replace(state, stats=replace(state.stats, budget_streak=streak)))
            return streak

    def complete_challenge(self, user_id: str) -> int:
        with self._store.lock(user_id):
            state = self._state(user_id)
            count = state.stats.completed_challenges + 1
            self._evaluate_state(user_id, replace(state, stats=replace(state.stats, completed_challenges=count)))
            return count

    # -- goals ----------------------------------------------------------------

    def track_goal_progress(self, user_id: str, goal: dict[str, Any]) -> bool:
        """
        Emit one goal_progress notification for the first checkpoint
        (25/50/75/100) crossed between the previous and current amount.

        goal: {"name", "target", "current", "previousAmount"}
        """
        target = to_amount(goal.get("target"))
        if not user_id or not goal.get("name") or not target:
            return False

        current = to_amount(goal.get("current"))
        previous = to_amount(goal.get("previousAmount", goal.get("previous_amount")))
        current_pct = current / target * 100
        milestone = rules.find_goal_milestone(previous / target * 100, current_pct)
        if milestone is None:
            return False

        name = goal["name"]
        if milestone == 100:
            title = "Goal Achieved! 🎉"
            message = f'You\'ve reached your goal of {format_currency(target)} for "{name}"!'
        else:
            title = f"{milestone}% Progress on Your Goal"
            message = (
                f"You've saved {format_currency(current)} toward your goal of "
                f'{format_currency(target)} for "{name}"'
            )
        priority, channels = typed_defaults(NotificationType.GOAL_PROGRESS, send_email=milestone == 100)
        self._sink.create(
            user_id,
            NotificationType.GOAL_PROGRESS,
            title,
            message,
            priority=priority,
            payload={**goal, "progressPercent": current_pct, "milestone": milestone},
            channels=channels,
        )
        return True

    # -- read side --------------------------------------------------------------

    def get_summary(self, user_id: str) -> dict[str, Any]:
        state = self.initialize(user_id)
        earned = []
        in_progress = []
        for definition in CATALOGUE:
            entry = state.achievements.get(definition.id)
            if entry is None:
                continue
            if entry.earned:
                earned.append({**definition.to_dict(), "earnedAt": entry.earned_at.isoformat()})
            elif entry.progress > 0:
                in_progress.append({**definition.to_dict(), "progress": entry.progress})
        in_progress.sort(key=lambda a: a["progress"], reverse=True)
        return {"stats": state.stats.to_dict(), "earned": earned, "inProgress": in_progress}

    def get_progress(self, user_id: str, achievement_id: str) -> dict[str, Any]:
        """Raises UnknownAchievementError for ids outside the catalogue."""
        definition = get_definition(achievement_id)
        entry = self.initialize(user_id).achievements.get(definition.id)
        return {**definition.to_dict(), **(entry.to_dict() if entry else {"earned": False, "progress": 0.0})}
