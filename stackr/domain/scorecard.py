"""
Financial wellness scorecard: seven weighted categories, score bands,
recommendations and insights.

Category weights (max points):
    INCOME_STABILITY 20, SAVINGS_RATIO 20, INVESTMENT_HEALTH 15,
    DEBT_MANAGEMENT 15, EXPENSE_CONTROL 15, GOAL_PROGRESS 10,
    GUARDRAILS_USAGE 5

Every scorer returns ``(points, details)`` with ``0 <= points <= max``.
``overall = round(sum(points) / sum(max) * 100)``, rounding half up.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from stackr.utils.dates import parse_datetime, to_iso
from stackr.utils.money import round_half_up, to_amount

DEFAULT_INCOME_SPLIT = {"needs": 40, "wants": 30, "savings": 30}


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FinancialSnapshot:
    income: list[dict[str, Any]] = field(default_factory=list)
    expenses: list[dict[str, Any]] = field(default_factory=list)
    savings: list[dict[str, Any]] = field(default_factory=list)
    goals: list[dict[str, Any]] = field(default_factory=list)
    debts: list[dict[str, Any]] = field(default_factory=list)
    investments: list[dict[str, Any]] = field(default_factory=list)
    budgets: list[dict[str, Any]] = field(default_factory=list)
    spending_limits: list[dict[str, Any]] = field(default_factory=list)
    income_split: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FinancialSnapshot":
        return cls(
            income=list(data.get("income") or []),
            expenses=list(data.get("expenses") or []),
            savings=list(data.get("savings") or []),
            goals=list(data.get("goals") or []),
            debts=list(data.get("debts") or []),
            investments=list(data.get("investments") or []),
            budgets=list(data.get("budgets") or []),
            spending_limits=list(data.get("spendingLimits") or data.get("spending_limits") or []),
            income_split=data.get("incomeSplit") or data.get("income_split"),
        )


@dataclass(frozen=True)
class CategoryScore:
    category: str
    name: str
    points: int
    max_points: int
    details: list[str]

    @property
    def percentage(self) -> int:
        return round_half_up(self.points / self.max_points * 100)

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "name": self.name,
            "points": self.points,
            "maxPoints": self.max_points,
            "percentage": self.percentage,
            "details": list(self.details),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CategoryScore":
        return cls(
            category=data["category"],
            name=data["name"],
            points=int(data["points"]),
            max_points=int(data["maxPoints"]),
            details=list(data.get("details", [])),
        )


@dataclass(frozen=True)
class Recommendation:
    category: str
    text: str
    priority: str

    def to_dict(self) -> dict[str, str]:
        return {"category": self.category, "text": self.text, "priority": self.priority}


@dataclass(frozen=True)
class Insight:
    title: str
    text: str
    type: str

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "text": self.text, "type": self.type}


@dataclass(frozen=True)
class ScoreCard:
    user_id: str
    generated_at: datetime
    overall_score: int
    category_scores: list[CategoryScore]
    recommendations: list[Recommendation]
    insights: list[Insight]
    score_level: str
    score_color: str
    score_description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "generatedAt": to_iso(self.generated_at),
            "overallScore": self.overall_score,
            "categoryScores": [c.to_dict() for c in self.category_scores],
            "recommendations": [r.to_dict() for r in self.recommendations],
            "insights": [i.to_dict() for i in self.insights],
            "scoreLevel": self.score_level,
            "scoreColor": self.score_color,
            "scoreDescription": self.score_description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScoreCard":
        return cls(
            user_id=data["userId"],
            generated_at=parse_datetime(data["generatedAt"]),
            overall_score=int(data["overallScore"]),
            category_scores=[CategoryScore.from_dict(c) for c in data.get("categoryScores", [])],
            recommendations=[Recommendation(**r) for r in data.get("recommendations", [])],
            insights=[Insight(**i) for i in data.get("insights", [])],
            score_level=data["scoreLevel"],
            score_color=data["scoreColor"],
            score_description=data["scoreDescription"],
        )


@dataclass(frozen=True)
class ScoreBand:
    min: int
    max: int
    level: str
    color: str
    description: str


SCORE_BANDS: tuple[ScoreBand, ...] = (
    ScoreBand(90, 100, "Excellent", "var(--color-success-600)",
              "Your financial health is excellent! You're making great choices across almost all "
              "financial dimensions."),
    ScoreBand(75, 89, "Strong", "var(--color-success-500)",
              "You have a strong financial foundation. Some minor improvements could further "
              "strengthen your position."),
    ScoreBand(60, 74, "Good", "var(--color-warning-400)",
              "Your financial health is good with some areas of strength, but there are opportunities "
              "for improvement."),
    ScoreBand(40, 59, "Fair", "var(--color-warning-500)",
              "Your financial situation has some challenges that need attention. Follow the "
              "recommendations to improve."),
    ScoreBand(0, 39, "Needs Attention", "var(--color-danger-500)",
              "Several aspects of your finances need immediate attention. Focus on the high-priority "
              "recommendations."),
)


def band_for(score: int) -> ScoreBand:
    for band in SCORE_BANDS:
        if band.min <= score <= band.max:
            return band
    return SCORE_BANDS[-1]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _record_time(record: dict[str, Any]) -> datetime:
    return parse_datetime(record.get("date") or record.get("createdAt")) or _EPOCH


def _by_date(records: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return sorted(records, key=_record_time)


def _sum(records: list[dict[str, Any]]) -> float:
    return sum(to_amount(r.get("amount")) for r in records)


def _growth(start: float, end: float) -> float:
    """Relative change in percent; a zero start counts as 100% growth when end is positive."""
    if start == 0:
        return 100.0 if end > 0 else 0.0
    return (end - start) / start * 100


# ---------------------------------------------------------------------------
# Category scorers
# ---------------------------------------------------------------------------

def score_income_stability(snapshot: FinancialSnapshot, max_points: int) -> tuple[int, list[str]]:
    income = snapshot.income
    details: list[str] = []
    if not income:
        return round_half_up(max_points * 0.2), ["No income data available to analyze."]

    ordered = _by_date(income)
    points = 0
    if len(ordered) >= 3:
        points += min(len(ordered), 6) * 2
        details.append(f"Consistent income tracked for {len(ordered)} periods.")
    else:
        details.append("Limited income history available.")

    if len(ordered) >= 2:
        first = to_amount(ordered[0].get("amount"))
        last = to_amount(ordered[-1].get("amount"))
        if last > first:
            growth = _growth(first, last)
            points += min(round_half_up(growth / 5), 8)
            details.append(f"Income has grown by {growth:.1f}% over time.")
        elif last == first:
            points += 4
            details.append("Income has remained stable over time.")
        else:
            details.append("Income has decreased over time.")

    sources = {r.get("source") or "Unknown" for r in income}
    if len(sources) > 1:
        points += min(len(sources), 3)
        details.append(f"Multiple income sources ({len(sources)}) provide stability.")

    return min(points, max_points), details


def score_savings_ratio(snapshot: FinancialSnapshot, max_points: int) -> tuple[int, list[str]]:
    total_income = _sum(snapshot.income)
    if total_income == 0:
        return round_half_up(max_points * 0.25), ["No income data available to analyze savings ratio."]

    ratio = _sum(snapshot.savings) / total_income * 100
    target = (snapshot.income_split or {}).get("savings") or 30

    if ratio >= target:
        return max_points, [
            f"Excellent! You're saving {ratio:.1f}% of your income, exceeding your {target}% target."
        ]
    if ratio >= target * 0.75:
        return round_half_up(max_points * 0.8), [
            f"You're saving {ratio:.1f}% of your income, close to your {target}% target."
        ]
    if ratio >= target * 0.5:
        return round_half_up(max_points * 0.6), [
            f"You're saving {ratio:.1f}% of your income, below your {target}% target."
        ]
    if ratio > 0:
        return round_half_up(max_points * 0.4), [
            f"You're only saving {ratio:.1f}% of your income, far below your {target}% target."
        ]
    return 0, [f"No savings detected. Your target is {target}% of income."]


_RETIREMENT_MARKERS = ("retirement", "401k", "ira")


def score_investment_health(snapshot: FinancialSnapshot, max_points: int) -> tuple[int, list[str]]:
    investments = snapshot.investments
    if not investments:
        return round_half_up(max_points * 0.2), ["No investment data available to analyze."]

    details: list[str] = []
    points = 0

    types = {i.get("type") or "Unknown" for i in investments}
    if len(types) >= 3:
        points += 5
        details.append(f"Well-diversified with {len(types)} different investment types.")
    elif len(types) == 2:
        points += 3
        details.append("Moderately diversified with 2 investment types.")
    else:
        points += 1
        details.append("Limited investment diversity with only one type of investment.")

    invested = _sum(investments)
    if invested > 10000:
        points += 5
        details.append("Strong investment foundation with significant capital invested.")
    elif invested > 5000:
        points += 3
        details.append("Moderate investment capital built up.")
    elif invested > 1000:
        points += 2
        details.append("Beginning to build investment capital.")
    else:
        points += 1
        details.append("Early stage investments with room to grow.")

    has_retirement = any(
        marker in (i.get("type") or "").lower() for i in investments for marker in _RETIREMENT_MARKERS
    )
    if has_retirement:
        points += 5
        details.append("Retirement investments in place, showing long-term planning.")
    else:
        details.append("No retirement-specific investments detected.")

    return min(points, max_points), details


_FREQUENCY_MULTIPLIER = {"monthly": 1.0, "biweekly": 2.17, "weekly": 4.33}


def monthly_income(income: list[dict[str, Any]]) -> float:
    """Monthly-equivalent income; records without a known frequency count as 0."""
    return sum(
        to_amount(r.get("amount")) * _FREQUENCY_MULTIPLIER.get(r.get("frequency"), 0.0) for r in income
    )


def score_debt_management(snapshot: FinancialSnapshot, max_points: int) -> tuple[int, list[str]]:
    debts = snapshot.debts
    if not debts:
        return round_half_up(max_points * 0.7), ["No debt information available."]

    details: list[str] = []
    points = max_points
    total_debt = _sum(debts)
    high_interest = _sum([d for d in debts if to_amount(d.get("interestRate")) > 10])

    income_per_month = monthly_income(snapshot.income)
    dti = 0.0
    if income_per_month > 0:
        # debt service estimated at 3% of the balance per month
        dti = total_debt * 0.03 / income_per_month * 100

    if dti > 40:
        points -= 10
        details.append("High debt-to-income ratio over 40% requires immediate attention.")
    elif dti > 30:
        points -= 7
        details.append("Debt-to-income ratio over 30% is concerning.")
    elif dti > 20:
        points -= 5
        details.append("Moderate debt-to-income ratio around 20-30%.")
    elif dti > 0:
        points -= 2
        details.append("Healthy debt-to-income ratio under 20%.")
    else:
        details.append("No debt-to-income calculation possible.")

    if high_interest > 0:
        share = high_interest / total_debt * 100
        if share > 50:
            points -= 5
            details.append("Majority of debt is high-interest (>10%), which is costly.")
        elif share > 20:
            points -= 3
            details.append("Significant portion of debt is high-interest (>10%).")
        else:
            points -= 1
            details.append("Small amount of high-interest debt detected.")
    elif total_debt > 0:
        details.append("No high-interest debt detected, which is excellent.")

    return max(0, points), details


def score_expense_control(snapshot: FinancialSnapshot, max_points: int) -> tuple[int, list[str]]:
    expenses = snapshot.expenses
    if not expenses:
        return round_half_up(max_points * 0.3), ["No expense data available to analyze."]

    details: list[str] = []
    points = 0

    spend_by_category: dict[str, float] = {}
    for e in expenses:
        name = e.get("category") or "Uncategorized"
        spend_by_category[name] = spend_by_category.get(name, 0.0) + to_amount(e.get("amount"))

    categorized = sum(1 for e in expenses if e.get("category") and e.get("category") != "Uncategorized")
    pct = categorized / len(expenses) * 100
    if pct >= 90:
        points += 5
        details.append(f"Excellent expense tracking with {pct:.0f}% of expenses categorized.")
    elif pct >= 70:
        points += 3
        details.append(f"Good expense tracking with {pct:.0f}% of expenses categorized.")
    elif pct >= 50:
        points += 2
        details.append(f"Moderate expense tracking with {pct:.0f}% of expenses categorized.")
    else:
        details.append(f"Poor expense tracking with only {pct:.0f}% of expenses categorized.")

    budgets = snapshot.budgets
    if budgets:
        tracked = [b for b in budgets if b.get("category")]
        within = sum(
            1 for b in tracked if spend_by_category.get(b["category"], 0.0) <= to_amount(b.get("amount"))
        )
        adherence = within / len(tracked) * 100 if tracked else 0.0
        if adherence >= 90:
            points += 10
            details.append(f"Excellent budget adherence at {adherence:.0f}% of categories within budget.")
        elif adherence >= 70:
            points += 7
            details.append(f"Good budget adherence with {adherence:.0f}% of categories within budget.")
        elif adherence >= 50:
            points += 4
            details.append(f"Moderate budget adherence with {adherence:.0f}% of categories within budget.")
        elif adherence > 0:
            points += 2
            details.append(f"Poor budget adherence with only {adherence:.0f}% of categories within budget.")
        else:
            details.append("No budget adherence data available to analyze.")
    else:
        details.append("No budgets set up to measure expense control against targets.")

    return min(points, max_points), details


def score_goal_progress(snapshot: FinancialSnapshot, max_points: int) -> tuple[int, list[str]]:
    goals = snapshot.goals
    if not goals:
        return round_half_up(max_points * 0.2), ["No financial goals set to track progress."]

    details: list[str] = []
    points = 0

    active = [g for g in goals if g.get("status") in ("active", "in-progress")]
    if len(active) >= 3:
        points += 4
        details.append(f"Strong goal setting with {len(active)} active financial goals.")
    elif active:
        points += 2
        details.append(f"{len(active)} active financial goals in progress.")
    else:
        details.append("No active financial goals found.")

    measured = [
        to_amount(g["progress"]) / to_amount(g["target"]) * 100
        for g in goals
        if to_amount(g.get("progress")) and to_amount(g.get("target"))
    ]
    average = sum(measured) / len(measured) if measured else 0.0
    if average >= 75:
        points += 6
        details.append(f"Excellent average goal progress of {average:.0f}%.")
    elif average >= 50:
        points += 4
        details.append(f"Good average goal progress of {average:.0f}%.")
    elif average >= 25:
        points += 2
        details.append(f"Moderate average goal progress of {average:.0f}%.")
    elif average > 0:
        points += 1
        details.append(f"Limited average goal progress of {average:.0f}%.")
    else:
        details.append("No measurable progress on financial goals.")

    return min(points, max_points), details


def score_guardrails_usage(snapshot: FinancialSnapshot, max_points: int) -> tuple[int, list[str]]:
    limits = snapshot.spending_limits
    if not limits:
        return 0, ["No spending guardrails set up to help control expenses."]

    details: list[str] = []
    points = 0
    count = len(limits)
    if count >= 5:
        points += 3
        details.append(f"Comprehensive guardrails with {count} spending categories protected.")
    elif count >= 3:
        points += 2
        details.append(f"Good guardrails coverage with {count} spending categories protected.")
    else:
        points += 1
        details.append(f"Basic guardrails with {count} spending categories protected.")

    adherence = sum(1 for limit in limits if not limit.get("isExceeded")) / count * 100
    if adherence >= 90:
        points += 2
        details.append(f"Excellent guardrails adherence at {adherence:.0f}%.")
    elif adherence >= 70:
        points += 1
        details.append(f"Good guardrails adherence at {adherence:.0f}%.")
    else:
        details.append(f"Guardrails adherence needs improvement at {adherence:.0f}%.")

    return min(points, max_points), details


Scorer = Callable[[FinancialSnapshot, int], tuple[int, list[str]]]

# (code, display name, max points, scorer) in display order
CATEGORIES: tuple[tuple[str, str, int, Scorer], ...] = (
    ("INCOME_STABILITY", "Income Stability", 20, score_income_stability),
    ("SAVINGS_RATIO", "Savings Ratio", 20, score_savings_ratio),
    ("INVESTMENT_HEALTH", "Investment Health", 15, score_investment_health),
    ("DEBT_MANAGEMENT", "Debt Management", 15, score_debt_management),
    ("EXPENSE_CONTROL", "Expense Control", 15, score_expense_control),
    ("GOAL_PROGRESS", "Financial Goals", 10, score_goal_progress),
    ("GUARDRAILS_USAGE", "Spending Guardrails", 5, score_guardrails_usage),
)


def score_categories(snapshot: FinancialSnapshot) -> list[CategoryScore]:
    scores = []
    for code, name, max_points, scorer in CATEGORIES:
        points, details = scorer(snapshot, max_points)
        scores.append(CategoryScore(code, name, points, max_points, details))
    return scores


def overall_score(scores: list[CategoryScore]) -> int:
    possible = sum(c.max_points for c in scores)
    if possible == 0:
        return 0
    return round_half_up(sum(c.points for c in scores) / possible * 100)


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------

# code -> (urgent cutoff, urgent (priority, text), otherwise (priority, text))
_RECOMMENDATIONS: dict[str, tuple[int, tuple[str, str], tuple[str, str]]] = {
    "INCOME_STABILITY": (
        50,
        ("high", "Focus on building more consistent income streams. Consider part-time work or "
                 "freelancing opportunities in the Gigs section."),
        ("medium", "Work on increasing your income consistency. Consider setting up automatic transfers "
                   "for irregular income to create more stability."),
    ),
    "SAVINGS_RATIO": (
        30,
        ("high", "Your savings rate needs immediate attention. Try the 24-hour rule: wait a day before "
                 "making non-essential purchases over $50."),
        ("medium", "Boost your savings by setting up automatic transfers on payday. Try the 50/30/20 rule: "
                   "50% needs, 30% wants, 20% savings."),
    ),
    "INVESTMENT_HEALTH": (
        40,
        ("high", "Start investing now, even with small amounts. Consider setting up a retirement account "
                 "like an IRA with automatic contributions."),
        ("medium", "Diversify your investments across more asset classes. Consider index funds for broader "
                   "market exposure with lower fees."),
    ),
    "DEBT_MANAGEMENT": (
        40,
        ("high", "Focus on paying down high-interest debt first. Consider the debt avalanche method to "
                 "minimize interest payments."),
        ("medium", "Continue your debt reduction plan. Consider refinancing high-interest debt to lower "
                   "rates if possible."),
    ),
    "EXPENSE_CONTROL": (
        40,
        ("high", "Set up specific budgets for each spending category and use Stackr Guardrails to prevent "
                 "overspending."),
        ("medium", "Review your largest expense categories and look for opportunities to reduce costs "
                   "without sacrificing quality of life."),
    ),
    "GOAL_PROGRESS": (
        40,
        ("medium", "Set 2-3 specific, measurable financial goals with deadlines. Break larger goals into "
                   "smaller milestones."),
        ("low", "Review and update your financial goals quarterly. Celebrate progress milestones to stay "
                "motivated."),
    ),
    "GUARDRAILS_USAGE": (
        0,
        ("medium", "Set up Stackr Guardrails for your top 5 spending categories to prevent overspending and "
                   "stay on budget."),
        ("medium", "Set up Stackr Guardrails for your top 5 spending categories to prevent overspending and "
                   "stay on budget."),
    ),
}

_GENERAL_RECOMMENDATIONS = (
    "Schedule a monthly financial review to track your progress and adjust your plans as needed.",
    "Build an emergency fund with 3-6 months of essential expenses before focusing on other financial goals.",
)


def build_recommendations(scores: list[CategoryScore]) -> list[Recommendation]:
    """Up to three weakest categories under 70%, padded with general advice."""
    result: list[Recommendation] = []
    weakest = sorted(scores, key=lambda c: c.percentage)[:3]
    for score in weakest:
        if score.percentage >= 70 or score.category not in _RECOMMENDATIONS:
            continue
        cutoff, urgent, normal = _RECOMMENDATIONS[score.category]
        priority, text = urgent if score.percentage < cutoff else normal
        result.append(Recommendation(score.name, text, priority))

    for text in _GENERAL_RECOMMENDATIONS:
        if len(result) < 3:
            result.append(Recommendation("General", text, "medium"))
    return result


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------

def build_insights(snapshot: FinancialSnapshot, scores: list[CategoryScore]) -> list[Insight]:
    insights: list[Insight] = []

    if scores:
        strongest = sorted(scores, key=lambda c: c.percentage, reverse=True)[0]
        first_detail = strongest.details[0] if strongest.details else ""
        insights.append(Insight(
            "Your Financial Strength",
            f"Your strongest area is {strongest.name} with a score of {strongest.percentage}%. {first_detail}",
            "positive",
        ))

    if len(snapshot.income) >= 3 and len(snapshot.expenses) >= 3:
        recent_income = _by_date(snapshot.income)[-3:]
        recent_expenses = _by_date(snapshot.expenses)[-3:]
        income_trend = _growth(to_amount(recent_income[0].get("amount")),
                               to_amount(recent_income[-1].get("amount")))
        expense_start = to_amount(recent_expenses[0].get("amount"))
        expense_end = to_amount(recent_expenses[-1].get("amount"))
        expense_trend = (expense_end - expense_start) / expense_start * 100 if expense_start > 0 else 0.0

        if income_trend > 5 and expense_trend < income_trend:
            insights.append(Insight(
                "Income Growth",
                f"Your income has increased by {income_trend:.1f}% recently, outpacing your expense growth "
                f"of {expense_trend:.1f}%. Keep up this positive trend!",
                "positive",
            ))
        elif income_trend < 0:
            insights.append(Insight(
                "Income Trend",
                f"Your income has decreased by {abs(income_trend):.1f}% recently. Consider exploring "
                f"additional income sources in the Gigs section.",
                "negative",
            ))

        if expense_trend > 10:
            insights.append(Insight(
                "Expense Trend",
                f"Your expenses have increased by {expense_trend:.1f}% recently. Review your spending "
                f"categories to identify areas for potential savings.",
                "negative",
            ))
        elif expense_trend < -5:
            insights.append(Insight(
                "Expense Reduction",
                f"You've reduced your expenses by {abs(expense_trend):.1f}% recently. Great job controlling "
                f"your spending!",
                "positive",
            ))

    split = snapshot.income_split or DEFAULT_INCOME_SPLIT
    insights.append(Insight(
        "Savings Potential",
        f"Based on your current income split, you're aiming to save {split.get('savings', 30)}% of your "
        f"income. Consistently achieving this target could significantly improve your financial security.",
        "neutral",
    ))
    return insights


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------

def compute_scorecard(user_id: str, snapshot: FinancialSnapshot, now: datetime) -> ScoreCard:
    scores = score_categories(snapshot)
    score = overall_score(scores)
    band = band_for(score)
    return ScoreCard(
        user_id=user_id,
        generated_at=now,
        overall_score=score,
        category_scores=scores,
        recommendations=build_recommendations(scores),
        insights=build_insights(snapshot, scores),
        score_level=band.level,
        score_color=band.color,
        score_description=band.description,
    )


def degraded_scorecard(user_id: str, now: datetime) -> ScoreCard:
    return ScoreCard(
        user_id=user_id,
        generated_at=now,
        overall_score=0,
        category_scores=[],
        recommendations=[Recommendation(
            "System",
            "We encountered an issue calculating your financial wellness score. Please try again later.",
            "high",
        )],
        insights=[],
        score_level="Unavailable",
        score_color="var(--color-neutral-400)",
        score_description="Score calculation is temporarily unavailable.",
    )
