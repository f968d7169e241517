"""
Financial wellness scorecard service.

Lifecycle per user: idle -> computing -> ready | error. Any exception while
fetching the snapshot, scoring or saving turns into the degraded scorecard
("Unavailable"); ``generate`` never raises.

History: newest first, capped (SCORECARD_HISTORY_LIMIT); a new scorecard is
due when there is none or the latest is SCORECARD_MAX_AGE_DAYS or older.
"""
import logging
import threading
from datetime import datetime
from enum import Enum
from typing import Callable, Protocol

from stackr.application.notifications import NotificationSink
from stackr.config import get_settings
from stackr.domain.notification import NotificationPriority, NotificationType, typed_defaults
from stackr.domain.scorecard import FinancialSnapshot, ScoreCard, compute_scorecard, degraded_scorecard
from stackr.infrastructure.store import SCORECARDS, UserStateStore
from stackr.utils.dates import utcnow

logger = logging.getLogger(__name__)


class ScorecardStatus(str, Enum):
    IDLE = "idle"
    COMPUTING = "computing"
    READY = "ready"
    ERROR = "error"


class SnapshotSource(Protocol):
    async def fetch(self, user_id: str) -> FinancialSnapshot: ...


class StaticSnapshotSource:
    """Fixed snapshots per user; unknown users get an empty snapshot."""

    def __init__(self, snapshots: dict[str, FinancialSnapshot | dict] | None = None):
        self._snapshots = {
            user_id: s if isinstance(s, FinancialSnapshot) else FinancialSnapshot.from_dict(s)
            for user_id, s in (snapshots or {}).items()
        }

    async def fetch(self, user_id: str) -> FinancialSnapshot:
        return self._snapshots.get(user_id, FinancialSnapshot())


def scorecard_message(score: int) -> str:
    if score >= 80:
        return f"Great job! Your financial wellness score is {score}. You're making excellent financial choices."
    if score >= 60:
        return (f"Your financial wellness score is {score}. "
                f"You've made good progress with some areas for improvement.")
    return f"Your financial wellness score is {score}. Check your assessment for important recommendations."


class ScorecardService:

    def __init__(
        self,
        store: UserStateStore,
        sink: NotificationSink,
        source: SnapshotSource,
        clock: Callable = utcnow,
        max_age_days: int | None = None,
        history_limit: int | None = None,
    ):
        settings = get_settings()
        self._store = store
        self._sink = sink
        self._source = source
        self._clock = clock
        self._max_age_days = max_age_days if max_age_days is not None else settings.SCORECARD_MAX_AGE_DAYS
        self._history_limit = history_limit or settings.SCORECARD_HISTORY_LIMIT
        self._status: dict[str, ScorecardStatus] = {}
        self._status_guard = threading.Lock()

    def status(self, user_id: str) -> ScorecardStatus:
        """In-flight or failed runs are tracked; otherwise READY once a card is saved."""
        with self._status_guard:
            status = self._status.get(user_id)
        if status is not None:
            return status
        return ScorecardStatus.READY if self._store.get(SCORECARDS, user_id) else ScorecardStatus.IDLE

    def _set_status(self, user_id: str, status: ScorecardStatus) -> None:
        # Only transient states are kept so the map stays bounded by active users.
        with self._status_guard:
            if status in (ScorecardStatus.COMPUTING, ScorecardStatus.ERROR):
                self._status[user_id] = status
            else:
                self._status.pop(user_id, None)

    # -- persistence --------------------------------------------------------------

    def save(self, user_id: str, scorecard: ScoreCard) -> None:
        with self._store.lock(user_id):
            history = self._store.get(SCORECARDS, user_id, [])
            history.insert(0, scorecard.to_dict())
            self._store.put(SCORECARDS, user_id, history[: self._history_limit])

    def get_history(self, user_id: str) -> list[ScoreCard]:
        return [ScoreCard.from_dict(d) for d in self._store.get(SCORECARDS, user_id, [])]

    def get_latest(self, user_id: str) -> ScoreCard | None:
        history = self._store.get(SCORECARDS, user_id, [])
        return ScoreCard.from_dict(history[0]) if history else None

    def should_regenerate(self, user_id: str, now: datetime | None = None) -> bool:
        latest = self.get_latest(user_id)
        if latest is None:
            return True
        age = (now or self._clock()) - latest.generated_at
        return age.days >= self._max_age_days

    # -- generation ---------------------------------------------------------------

    def _notify(self, user_id: str, scorecard: ScoreCard) -> None:
        _, channels = typed_defaults(NotificationType.FINANCIAL_SUMMARY)
        try:
            self._sink.create(
                user_id,
                NotificationType.FINANCIAL_SUMMARY,
                "Financial Wellness Scorecard",
                scorecard_message(scorecard.overall_score),
                priority=NotificationPriority.MEDIUM,
                payload={
                    "score": scorecard.overall_score,
                    "scoreLevel": scorecard.score_level,
                    "generatedAt": scorecard.generated_at.isoformat(),
                    "assessmentType": "personal_finance",
                },
                channels=channels,
            )
        except Exception:
            logger.exception("Scorecard notification failed for user_id=%s", user_id)

    async def generate(self, user_id: str) -> ScoreCard:
        """Fetch, score, save and notify; degrades instead of raising."""
        self._set_status(user_id, ScorecardStatus.COMPUTING)
        try:
            snapshot = await self._source.fetch(user_id)
            scorecard = compute_scorecard(user_id, snapshot, self._clock())
            self.save(user_id, scorecard)
        except Exception:
            logger.exception("Scorecard computation failed for user_id=%s", user_id)
            self._set_status(user_id, ScorecardStatus.ERROR)
            return degraded_scorecard(user_id, self._clock())

        self._set_status(user_id, ScorecardStatus.READY)
        self._notify(user_id, scorecard)
        logger.info("Scorecard generated for user_id=%s score=%d", user_id, scorecard.overall_score)
        return scorecard

    async def generate_if_due(self, user_id: str, now: datetime | None = None) -> ScoreCard | None:
        if not self.should_regenerate(user_id, now):
            return None
        return await self.generate(user_id)
