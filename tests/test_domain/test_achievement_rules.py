"""
Tests for the achievement catalogue and pure evaluation rules
"""
from dataclasses import replace
from datetime import date, datetime, timezone

from stackr.domain.achievement import (
    CATALOGUE,
    CATALOGUE_BY_ID,
    AchievementProgress,
    AchievementState,
    StatsUpdate,
    apply_update,
    compute_progress,
    evaluate,
    find_goal_milestone,
    next_login_streak,
)

NOW = datetime(2026, 3, 18, 12, 0, tzinfo=timezone.utc)


def _state(**stats) -> AchievementState:
    state = AchievementState.seed(NOW)
    return replace(state, stats=replace(state.stats, **stats))


def _with_debt(*amounts) -> AchievementState:
    state = AchievementState.seed(NOW)
    stats = state.stats
    for amount in amounts:
        stats = apply_update(stats, StatsUpdate(total_debt=amount), NOW)
    return replace(state, stats=stats)


def test_catalogue_has_unique_ids():
    assert len(CATALOGUE) == 18
    assert len(CATALOGUE_BY_ID) == len(CATALOGUE)


def test_seed_has_every_entry_unearned():
    state = AchievementState.seed(NOW)
    assert set(state.achievements) == set(CATALOGUE_BY_ID)
    assert not any(p.earned for p in state.achievements.values())
    assert state.stats.last_login == NOW


def test_savings_progress_is_ratio_of_threshold():
    progress, achieved = compute_progress(CATALOGUE_BY_ID["first_1000_saved"], _state(total_saved=250).stats)
    assert progress == 25.0
    assert achieved is False


def test_progress_is_clamped_to_100():
    progress, achieved = compute_progress(CATALOGUE_BY_ID["first_100_saved"], _state(total_saved=5000).stats)
    assert progress == 100.0
    assert achieved is True


def test_evaluate_reports_newly_earned_once():
    state, earned = evaluate(_state(total_saved=150), NOW)
    assert [a.id for a in earned] == ["first_100_saved"]
    assert state.achievements["first_100_saved"].earned_at == NOW

    _, earned_again = evaluate(state, NOW)
    assert earned_again == []


def test_earned_never_reverts():
    state, _ = evaluate(_state(total_saved=150), NOW)
    lowered = replace(state, stats=replace(state.stats, total_saved=0))
    state, earned = evaluate(lowered, NOW)
    assert earned == []
    assert state.achievements["first_100_saved"].earned is True


def test_evaluate_does_not_mutate_input():
    state = _state(total_saved=150)
    evaluate(state, NOW)
    assert state.achievements["first_100_saved"] == AchievementProgress()


def test_income_growth_needs_two_points():
    state = AchievementState.seed(NOW)
    stats = apply_update(state.stats, StatsUpdate(monthly_income=1000), NOW)
    assert compute_progress(CATALOGUE_BY_ID["income_boost_10"], stats) == (0.0, False)

    stats = apply_update(stats, StatsUpdate(monthly_income=1300), NOW)
    progress, achieved = compute_progress(CATALOGUE_BY_ID["income_boost_25"], stats)
    assert achieved is True
    assert progress == 100.0


class TestDebtRules:

    def test_debt_freedom_when_paid_off(self):
        stats = _with_debt(5000, 0).stats
        progress, achieved = compute_progress(CATALOGUE_BY_ID["debt_freedom"], stats)
        assert achieved is True
        assert progress == 100.0

    def test_debt_freedom_needs_initial_debt(self):
        stats = _with_debt(0, 0).stats
        progress, achieved = compute_progress(CATALOGUE_BY_ID["debt_freedom"], stats)
        assert achieved is False
        assert progress == 0.0

    def test_partial_reduction(self):
        stats = _with_debt(4000, 3000).stats
        assert compute_progress(CATALOGUE_BY_ID["debt_reduction_25"], stats) == (100.0, True)
        progress, achieved = compute_progress(CATALOGUE_BY_ID["debt_freedom"], stats)
        assert achieved is False
        assert progress == 25.0


def test_rule_less_types_are_never_earned():
    state = _state(total_saved=10**6, budget_streak=1000, completed_challenges=100, login_streak=365)
    state, earned = evaluate(state, NOW)
    earned_ids = {a.id for a in earned}
    for achievement_id in ("perfect_budget_week", "perfect_budget_month", "profile_complete", "first_bank_link"):
        assert achievement_id not in earned_ids
        assert state.achievements[achievement_id].progress == 0.0


def test_history_is_capped_oldest_first_out():
    stats = AchievementState.seed(NOW).stats
    for amount in (100, 200, 300, 400):
        stats = apply_update(stats, StatsUpdate(monthly_income=amount), NOW, history_limit=3)
    assert [p.amount for p in stats.monthly_income_history] == [200.0, 300.0, 400.0]


def test_apply_update_accepts_string_amounts():
    stats = apply_update(AchievementState.seed(NOW).stats, StatsUpdate(total_saved="1 200,50"), NOW)
    assert stats.total_saved == 1200.5


class TestLoginStreak:

    def test_same_day_is_not_counted(self):
        assert next_login_streak(3, date(2026, 3, 18), date(2026, 3, 18)) is None

    def test_next_day_extends(self):
        assert next_login_streak(3, date(2026, 3, 18), date(2026, 3, 19)) == 4

    def test_gap_resets_to_one(self):
        assert next_login_streak(3, date(2026, 3, 18), date(2026, 3, 21)) == 1


class TestGoalMilestones:

    def test_reports_first_crossed_only(self):
        assert find_goal_milestone(50.0, 80.0) == 75

    def test_jump_over_several_reports_lowest(self):
        assert find_goal_milestone(0.0, 100.0) == 25

    def test_nothing_crossed(self):
        assert find_goal_milestone(50.0, 55.0) is None

    def test_exact_hit_counts(self):
        assert find_goal_milestone(99.0, 100.0) == 100


def test_stats_update_from_camel_case_dict():
    update = StatsUpdate.from_dict({
        "totalSaved": 150,
        "budgetStreak": 7,
        "completedChallenges": 2,
        "monthlyIncome": 4000,
        "totalDebt": 900,
        "unrelated": True,
    })
    assert update == StatsUpdate(
        total_saved=150, budget_streak=7, completed_challenges=2, monthly_income=4000, total_debt=900,
    )


def test_stats_update_from_snake_case_dict():
    assert StatsUpdate.from_dict({"total_saved": 10}) == StatsUpdate(total_saved=10)
    assert StatsUpdate.from_dict({}) == StatsUpdate()
