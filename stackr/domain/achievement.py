"""
Achievement catalogue and pure evaluation rules.

Rules:
- savings_milestone / streak / challenge_complete / login_streak: progress is
  value / threshold, achieved once value >= threshold
- income_growth: growth between the oldest and latest income history point
- debt_reduction: reduction between the oldest and latest debt history point;
  ``debt_freedom`` requires the latest point to be zero or below
- budget_mastery / account_milestone: no rule, never earned

``evaluate`` never mutates its input: it returns a new state plus the list of
definitions that became earned during the pass.
"""
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any

from stackr.utils.dates import parse_datetime, to_iso, utcnow
from stackr.utils.money import to_amount


class AchievementType(str, Enum):
    SAVINGS_MILESTONE = "savings_milestone"
    STREAK = "streak"
    BUDGET_MASTERY = "budget_mastery"
    INCOME_GROWTH = "income_growth"
    DEBT_REDUCTION = "debt_reduction"
    CHALLENGE_COMPLETE = "challenge_complete"
    ACCOUNT_MILESTONE = "account_milestone"
    LOGIN_STREAK = "login_streak"


@dataclass(frozen=True)
class AchievementDefinition:
    id: str
    type: AchievementType
    title: str
    description: str
    threshold: float
    icon: str
    milestone: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "description": self.description,
            "threshold": self.threshold,
            "icon": self.icon,
            "milestone": self.milestone,
        }


def _a(id, type_, title, description, threshold, icon, milestone) -> AchievementDefinition:
    return AchievementDefinition(id, type_, title, description, threshold, icon, milestone)


T = AchievementType

CATALOGUE: tuple[AchievementDefinition, ...] = (
    _a("first_100_saved", T.SAVINGS_MILESTONE, "Savings Starter", "Save your first $100", 100, "💰", True),
    _a("first_1000_saved", T.SAVINGS_MILESTONE, "Serious Saver", "Save your first $1,000", 1000, "💸", True),
    _a("first_5000_saved", T.SAVINGS_MILESTONE, "Savings Champion", "Save your first $5,000", 5000, "🏆", True),
    _a("week_streak", T.STREAK, "Week Warrior", "Stay under budget for 7 consecutive days", 7, "📅", False),
    _a("month_streak", T.STREAK, "Monthly Master", "Stay under budget for a full month", 30, "📆", True),
    _a("quarter_streak", T.STREAK, "Quarterly Champion", "Stay under budget for 3 consecutive months", 90, "🏅", True),
    _a("perfect_budget_week", T.BUDGET_MASTERY, "Budget Apprentice",
       "Stay within 5% of your budget for a full week", 5, "📊", False),
    _a("perfect_budget_month", T.BUDGET_MASTERY, "Budget Expert",
       "Stay within 5% of your budget for a full month", 5, "📈", True),
    _a("income_boost_10", T.INCOME_GROWTH, "Income Booster", "Increase your monthly income by 10%", 10, "💼", True),
    _a("income_boost_25", T.INCOME_GROWTH, "Income Accelerator", "Increase your monthly income by 25%", 25, "🚀", True),
    _a("debt_reduction_25", T.DEBT_REDUCTION, "Debt Crusher", "Reduce your total debt by 25%", 25, "✂️", True),
    _a("debt_freedom", T.DEBT_REDUCTION, "Debt Freedom", "Pay off all your tracked debt", 100, "🎊", True),
    _a("first_challenge", T.CHALLENGE_COMPLETE, "Challenge Accepted",
       "Complete your first savings challenge", 1, "🏁", True),
    _a("five_challenges", T.CHALLENGE_COMPLETE, "Challenge Master", "Complete 5 savings challenges", 5, "🏋️", True),
    _a("profile_complete", T.ACCOUNT_MILESTONE, "Profile Perfectionist",
       "Complete all profile information", 100, "📝", False),
    _a("first_bank_link", T.ACCOUNT_MILESTONE, "Connected", "Link your first bank account", 1, "🔗", True),
    _a("login_streak_7", T.LOGIN_STREAK, "Consistency Champion", "Log in for 7 consecutive days", 7, "🔥", False),
    _a("login_streak_30", T.LOGIN_STREAK, "Dedication Master", "Log in for 30 consecutive days", 30, "⭐", True),
)

CATALOGUE_BY_ID: dict[str, AchievementDefinition] = {a.id: a for a in CATALOGUE}

GOAL_MILESTONES = (25, 50, 75, 100)


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HistoryPoint:
    date: datetime
    amount: float

    def to_dict(self) -> dict[str, Any]:
        return {"date": to_iso(self.date), "amount": self.amount}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoryPoint":
        return cls(date=parse_datetime(data["date"]), amount=to_amount(data["amount"]))


@dataclass(frozen=True)
class AchievementProgress:
    earned: bool = False
    progress: float = 0.0
    earned_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"earned": self.earned, "progress": self.progress, "earnedAt": to_iso(self.earned_at)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AchievementProgress":
        return cls(
            earned=bool(data.get("earned", False)),
            progress=float(data.get("progress", 0.0)),
            earned_at=parse_datetime(data.get("earnedAt")),
        )


@dataclass(frozen=True)
class AchievementStats:
    total_saved: float = 0.0
    budget_streak: int = 0
    completed_challenges: int = 0
    login_streak: int = 0
    last_login: datetime = field(default_factory=utcnow)
    monthly_income_history: tuple[HistoryPoint, ...] = ()
    debt_history: tuple[HistoryPoint, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalSaved": self.total_saved,
            "budgetStreak": self.budget_streak,
            "completedChallenges": self.completed_challenges,
            "loginStreak": self.login_streak,
            "lastLogin": to_iso(self.last_login),
            "monthlyIncomeHistory": [p.to_dict() for p in self.monthly_income_history],
            "debtHistory": [p.to_dict() for p in self.debt_history],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AchievementStats":
        return cls(
            total_saved=to_amount(data.get("totalSaved")),
            budget_streak=int(data.get("budgetStreak", 0)),
            completed_challenges=int(data.get("completedChallenges", 0)),
            login_streak=int(data.get("loginStreak", 0)),
            last_login=parse_datetime(data.get("lastLogin")) or utcnow(),
            monthly_income_history=tuple(HistoryPoint.from_dict(p) for p in data.get("monthlyIncomeHistory", [])),
            debt_history=tuple(HistoryPoint.from_dict(p) for p in data.get("debtHistory", [])),
        )


@dataclass(frozen=True)
class AchievementState:
    achievements: dict[str, AchievementProgress]
    stats: AchievementStats

    @classmethod
    def seed(cls, now: datetime, catalogue=CATALOGUE) -> "AchievementState":
        return cls(
            achievements={a.id: AchievementProgress() for a in catalogue},
            stats=AchievementStats(last_login=now),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "achievements": {k: v.to_dict() for k, v in self.achievements.items()},
            "stats": self.stats.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AchievementState":
        return cls(
            achievements={k: AchievementProgress.from_dict(v) for k, v in data.get("achievements", {}).items()},
            stats=AchievementStats.from_dict(data.get("stats", {})),
        )


@dataclass(frozen=True)
class StatsUpdate:
    """Absolute stat values; income and debt are appended to their histories."""
    total_saved: float | None = None
    budget_streak: int | None = None
    completed_challenges: int | None = None
    monthly_income: float | None = None
    total_debt: float | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StatsUpdate":
        """camelCase or snake_case keys; unknown keys are ignored."""
        def pick(camel: str, snake: str):
            return data.get(camel, data.get(snake))

        return cls(
            total_saved=pick("totalSaved", "total_saved"),
            budget_streak=pick("budgetStreak", "budget_streak"),
            completed_challenges=pick("completedChallenges", "completed_challenges"),
            monthly_income=pick("monthlyIncome", "monthly_income"),
            total_debt=pick("totalDebt", "total_debt"),
        )


# ---------------------------------------------------------------------------
# Pure rules
# ---------------------------------------------------------------------------

def _push_capped(history: tuple[HistoryPoint, ...], point: HistoryPoint, limit: int) -> tuple[HistoryPoint, ...]:
    items = history + (point,)
    if len(items) > limit:
        items = items[len(items) - limit:]
    return items


def apply_update(stats: AchievementStats, update: StatsUpdate | None, now: datetime,
                 history_limit: int = 12) -> AchievementStats:
    if update is None:
        return stats
    changes: dict[str, Any] = {}
    if update.total_saved is not None:
        changes["total_saved"] = to_amount(update.total_saved)
    if update.budget_streak is not None:
        changes["budget_streak"] = int(update.budget_streak)
    if update.completed_challenges is not None:
        changes["completed_challenges"] = int(update.completed_challenges)
    if update.monthly_income is not None:
        changes["monthly_income_history"] = _push_capped(
            stats.monthly_income_history, HistoryPoint(now, to_amount(update.monthly_income)), history_limit,
        )
    if update.total_debt is not None:
        changes["debt_history"] = _push_capped(
            stats.debt_history, HistoryPoint(now, to_amount(update.total_debt)), history_limit,
        )
    return replace(stats, **changes)


def _ratio_progress(value: float, threshold: float) -> float:
    return max(0.0, min(100.0, value / threshold * 100))


_COUNTER_FIELDS = {
    AchievementType.SAVINGS_MILESTONE: "total_saved",
    AchievementType.STREAK: "budget_streak",
    AchievementType.CHALLENGE_COMPLETE: "completed_challenges",
    AchievementType.LOGIN_STREAK: "login_streak",
}


def compute_progress(definition: AchievementDefinition, stats: AchievementStats) -> tuple[float, bool]:
    """Return (progress 0..100, achieved) for one catalogue entry."""
    if definition.type in _COUNTER_FIELDS:
        value = float(getattr(stats, _COUNTER_FIELDS[definition.type]))
        return _ratio_progress(value, definition.threshold), value >= definition.threshold

    if definition.type == AchievementType.INCOME_GROWTH:
        history = stats.monthly_income_history
        if len(history) < 2:
            return 0.0, False
        oldest, latest = history[0].amount, history[-1].amount
        growth = (latest - oldest) / oldest * 100 if oldest > 0 else 0.0
        return _ratio_progress(growth, definition.threshold), growth >= definition.threshold

    if definition.type == AchievementType.DEBT_REDUCTION:
        history = stats.debt_history
        if len(history) < 2:
            return 0.0, False
        initial, current = history[0].amount, history[-1].amount
        if definition.id == "debt_freedom":
            progress = max(0.0, min(100.0, 100 - current / initial * 100)) if initial > 0 else 0.0
            return progress, current <= 0 and initial > 0
        reduction = (initial - current) / initial * 100 if initial > 0 else 0.0
        return _ratio_progress(reduction, definition.threshold), reduction >= definition.threshold

    # budget_mastery and account_milestone have no rule yet
    return 0.0, False


def evaluate(
    state: AchievementState,
    now: datetime,
    catalogue=CATALOGUE,
) -> tuple[AchievementState, list[AchievementDefinition]]:
    """
    Walk the catalogue once. Earned entries are skipped, so ``earned`` never
    goes back to False.
    """
    achievements = dict(state.achievements)
    newly_earned: list[AchievementDefinition] = []
    for definition in catalogue:
        current = achievements.get(definition.id, AchievementProgress())
        if current.earned:
            continue
        progress, achieved = compute_progress(definition, state.stats)
        if achieved:
            achievements[definition.id] = AchievementProgress(earned=True, progress=progress, earned_at=now)
            newly_earned.append(definition)
        else:
            achievements[definition.id] = replace(current, progress=progress)
    return replace(state, achievements=achievements), newly_earned


def next_login_streak(streak: int, last_login_day: date, today: date) -> int | None:
    """
    New streak value for a login on ``today``, or None when already counted.
    """
    days = (today - last_login_day).days
    if days == 0:
        return None
    if days == 1:
        return streak + 1
    return 1


def find_goal_milestone(previous_pct: float, current_pct: float) -> int | None:
    """First checkpoint m with previous < m <= current."""
    for m in GOAL_MILESTONES:
        if previous_pct < m <= current_pct:
            return m
    return None
