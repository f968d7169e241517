"""
Tests for the achievement engine
"""
import pytest

from stackr.application.achievements import AchievementEngine, get_definition
from stackr.domain.achievement import StatsUpdate
from stackr.domain.notification import NotificationType
from stackr.exceptions import UnknownAchievementError

USER = "user-1"


def _titles(notifications):
    return [n.title for n in notifications.list_all(USER)]


def test_initialize_seeds_catalogue(achievements):
    state = achievements.initialize(USER)
    assert len(state.achievements) == 18
    assert not any(p.earned for p in state.achievements.values())


def test_initialize_keeps_existing_state(achievements):
    achievements.evaluate(USER, {"total_saved": 150})
    state = achievements.initialize(USER)
    assert state.achievements["first_100_saved"].earned is True


def test_evaluate_notifies_new_achievement(achievements, notifications):
    earned = achievements.evaluate(USER, {"total_saved": 150})
    assert [a.id for a in earned] == ["first_100_saved"]

    [n] = notifications.list_all(USER)
    assert n.type == NotificationType.ACHIEVEMENT
    assert n.title == "Achievement Unlocked: Savings Starter"
    assert n.message == "💰 Save your first $100"
    assert n.channels.send_email is True
    assert n.payload["id"] == "first_100_saved"
    assert "earnedAt" in n.payload


def test_evaluate_accepts_camel_case_stats(achievements):
    earned = achievements.evaluate(USER, {"totalSaved": 150, "budgetStreak": 7, "source": "sync"})
    assert sorted(a.id for a in earned) == ["first_100_saved", "week_streak"]
    assert achievements.get_summary(USER)["stats"]["totalSaved"] == 150


def test_non_milestone_achievement_skips_email(achievements, notifications):
    achievements.evaluate(USER, StatsUpdate(budget_streak=7))
    [n] = notifications.list_all(USER)
    assert n.title == "Achievement Unlocked: Week Warrior"
    assert n.channels.send_email is False


def test_earned_is_monotonic(achievements, notifications):
    achievements.evaluate(USER, {"total_saved": 150})
    assert achievements.evaluate(USER, {"total_saved": 10}) == []
    assert achievements.get_progress(USER, "first_100_saved")["earned"] is True
    assert len(notifications.list_all(USER)) == 1


def test_progress_tracked_for_unearned(achievements):
    achievements.evaluate(USER, {"total_saved": 150})
    progress = achievements.get_progress(USER, "first_1000_saved")
    assert progress["earned"] is False
    assert progress["progress"] == 15.0


def test_reset_clears_earned(achievements):
    achievements.evaluate(USER, {"total_saved": 150})
    state = achievements.reset(USER)
    assert state.achievements["first_100_saved"].earned is False
    assert state.stats.total_saved == 0


class TestLoginStreak:

    def test_same_day_does_not_count(self, achievements):
        achievements.initialize(USER)
        assert achievements.update_login_streak(USER) == 0

    def test_consecutive_days(self, achievements, clock):
        achievements.initialize(USER)
        clock.advance(days=1)
        assert achievements.update_login_streak(USER) == 1
        clock.advance(days=1)
        assert achievements.update_login_streak(USER) == 2
        assert achievements.update_login_streak(USER) == 2

    def test_gap_resets(self, achievements, clock):
        achievements.initialize(USER)
        clock.advance(days=1)
        achievements.update_login_streak(USER)
        clock.advance(days=3)
        assert achievements.update_login_streak(USER) == 1

    def test_seven_days_earn_badge(self, achievements, notifications, clock):
        achievements.initialize(USER)
        for _ in range(7):
            clock.advance(days=1)
            achievements.update_login_streak(USER)
        assert "Achievement Unlocked: Consistency Champion" in _titles(notifications)


def test_budget_streak(achievements):
    for _ in range(7):
        achievements.update_budget_streak(USER, True)
    assert achievements.get_progress(USER, "week_streak")["earned"] is True
    assert achievements.update_budget_streak(USER, False) == 0


def test_complete_challenge(achievements, notifications):
    assert achievements.complete_challenge(USER) == 1
    assert "Achievement Unlocked: Challenge Accepted" in _titles(notifications)


class TestDebt:

    def test_paying_off_debt(self, achievements):
        achievements.evaluate(USER, {"total_debt": 5000})
        earned = achievements.evaluate(USER, {"total_debt": 0})
        assert {a.id for a in earned} == {"debt_reduction_25", "debt_freedom"}
        progress = achievements.get_progress(USER, "debt_freedom")
        assert progress["earned"] is True
        assert progress["progress"] == 100.0

    def test_no_initial_debt_never_frees(self, achievements):
        achievements.evaluate(USER, {"total_debt": 0})
        assert achievements.evaluate(USER, {"total_debt": 0}) == []


def test_income_history_is_capped(store, notifications, clock):
    engine = AchievementEngine(store, notifications, clock=clock, history_limit=3)
    for amount in (1000, 1100, 1200, 1300):
        engine.evaluate(USER, {"monthly_income": amount})
    history = engine.get_summary(USER)["stats"]["monthlyIncomeHistory"]
    assert [p["amount"] for p in history] == [1100.0, 1200.0, 1300.0]


def test_summary_lists_earned_and_in_progress(achievements):
    achievements.evaluate(USER, {"total_saved": 1500})
    summary = achievements.get_summary(USER)
    earned_ids = [a["id"] for a in summary["earned"]]
    assert earned_ids == ["first_100_saved", "first_1000_saved"]
    progress = [a["progress"] for a in summary["inProgress"]]
    assert progress == sorted(progress, reverse=True)
    assert summary["inProgress"][0]["id"] == "first_5000_saved"


def test_unknown_achievement(achievements):
    with pytest.raises(UnknownAchievementError):
        achievements.get_progress(USER, "nope")
    with pytest.raises(UnknownAchievementError):
        get_definition("nope")


class TestGoalProgress:
    GOAL = {"name": "Emergency Fund", "target": 2000, "current": 1600, "previousAmount": 1000}

    def test_reports_crossed_milestone(self, achievements, notifications):
        assert achievements.track_goal_progress(USER, self.GOAL) is True
        [n] = notifications.list_all(USER)
        assert n.type == NotificationType.GOAL_PROGRESS
        assert n.title == "75% Progress on Your Goal"
        assert n.message == 'You\'ve saved $1600.00 toward your goal of $2000.00 for "Emergency Fund"'
        assert n.payload["milestone"] == 75
        assert n.payload["progressPercent"] == 80.0
        assert n.channels.send_email is False

    def test_goal_achieved(self, achievements, notifications):
        goal = {**self.GOAL, "current": 2000, "previousAmount": 1900}
        assert achievements.track_goal_progress(USER, goal) is True
        [n] = notifications.list_all(USER)
        assert n.title == "Goal Achieved! 🎉"
        assert n.message == 'You\'ve reached your goal of $2000.00 for "Emergency Fund"!'
        assert n.channels.send_email is True

    def test_no_milestone_crossed(self, achievements, notifications):
        goal = {**self.GOAL, "current": 1100}
        assert achievements.track_goal_progress(USER, goal) is False
        assert notifications.list_all(USER) == []

    def test_invalid_goal(self, achievements):
        assert achievements.track_goal_progress(USER, {"name": "X", "target": 0, "current": 10}) is False
        assert achievements.track_goal_progress("", self.GOAL) is False
