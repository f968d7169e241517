"""
Weekly / monthly financial summary computation and message phrasing.

Records are plain JSON-like dicts:
    income:   {"amount": 850, "source": "Salary", ...}
    expenses: {"amount": 120, "category": "Groceries", ...}
Expense amounts are positive here; the transaction adapter converts signs.
"""
from dataclasses import dataclass, field
from typing import Any

from stackr.utils.money import format_currency, percent_change, to_amount


@dataclass(frozen=True)
class PeriodRecords:
    income: list[dict[str, Any]] = field(default_factory=list)
    expenses: list[dict[str, Any]] = field(default_factory=list)
    start_date: str | None = None
    end_date: str | None = None
    month: str | None = None
    year: int | None = None
    goals: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class FinancialSummary:
    period: str
    total_income: float
    total_expenses: float
    net_cashflow: float
    savings_rate: str
    top_spending_categories: list[dict[str, Any]]
    income_breakdown: list[dict[str, Any]]
    expenses_by_category: dict[str, float]
    start_date: str | None = None
    end_date: str | None = None
    month: str | None = None
    year: int | None = None
    income_change: float | None = None
    expense_change: float | None = None
    savings_rate_change: float | None = None
    goals: list[dict[str, Any]] = field(default_factory=list)

    @property
    def top_spending_category(self) -> dict[str, Any] | None:
        return self.top_spending_categories[0] if self.top_spending_categories else None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "period": self.period,
            "totalIncome": self.total_income,
            "totalExpenses": self.total_expenses,
            "netCashflow": self.net_cashflow,
            "savingsRate": self.savings_rate,
            "incomeBreakdown": self.income_breakdown,
            "expensesByCategory": self.expenses_by_category,
        }
        if self.period == "weekly":
            data.update(
                startDate=self.start_date,
                endDate=self.end_date,
                topSpendingCategory=self.top_spending_category,
            )
        else:
            data.update(
                month=self.month,
                year=self.year,
                topSpendingCategories=self.top_spending_categories,
                incomeChange=self.income_change,
                expenseChange=self.expense_change,
                savingsRateChange=self.savings_rate_change,
                goals=self.goals,
            )
        return data


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def total(records: list[dict[str, Any]]) -> float:
    return sum(to_amount(r.get("amount")) for r in records)


def raw_savings_rate(income: float, expenses: float) -> float:
    return (income - expenses) / income * 100 if income > 0 else 0.0


def savings_rate(income: float, expenses: float) -> str:
    """One-decimal string, e.g. "63.3"; "0.0" without income."""
    return f"{raw_savings_rate(income, expenses):.1f}"


def category_totals(expenses: list[dict[str, Any]]) -> dict[str, float]:
    totals: dict[str, float] = {}
    for expense in expenses:
        name = expense.get("category") or "Uncategorized"
        totals[name] = totals.get(name, 0.0) + to_amount(expense.get("amount"))
    return totals


def top_categories(totals: dict[str, float], limit: int) -> list[dict[str, Any]]:
    """Highest totals first; equal totals keep first-seen order."""
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [{"name": name, "amount": amount} for name, amount in ranked[:limit]]


def build_weekly(records: PeriodRecords) -> FinancialSummary:
    income = total(records.income)
    expenses = total(records.expenses)
    by_category = category_totals(records.expenses)
    return FinancialSummary(
        period="weekly",
        total_income=income,
        total_expenses=expenses,
        net_cashflow=income - expenses,
        savings_rate=savings_rate(income, expenses),
        top_spending_categories=top_categories(by_category, 1),
        income_breakdown=list(records.income),
        expenses_by_category=by_category,
        start_date=records.start_date,
        end_date=records.end_date,
    )


def build_monthly(records: PeriodRecords, previous: PeriodRecords | None = None) -> FinancialSummary:
    income = total(records.income)
    expenses = total(records.expenses)
    rate = savings_rate(income, expenses)
    by_category = category_totals(records.expenses)

    income_change = expense_change = rate_change = None
    if previous is not None:
        prev_income = total(previous.income)
        prev_expenses = total(previous.expenses)
        income_change = percent_change(prev_income, income)
        expense_change = percent_change(prev_expenses, expenses)
        # percentage points, not a relative change
        rate_change = float(rate) - raw_savings_rate(prev_income, prev_expenses)

    return FinancialSummary(
        period="monthly",
        total_income=income,
        total_expenses=expenses,
        net_cashflow=income - expenses,
        savings_rate=rate,
        top_spending_categories=top_categories(by_category, 3),
        income_breakdown=list(records.income),
        expenses_by_category=by_category,
        month=records.month,
        year=records.year,
        income_change=income_change,
        expense_change=expense_change,
        savings_rate_change=rate_change,
        goals=list(records.goals),
    )


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

def _cashflow_sentence(summary: FinancialSummary, period_word: str) -> str:
    if summary.net_cashflow > 0:
        return f"Net savings: {format_currency(summary.net_cashflow)} ({summary.savings_rate}% savings rate)."
    if summary.net_cashflow < 0:
        return f"Net deficit: {format_currency(summary.net_cashflow)}."
    return f"Break-even for the {period_word}."


def _change_phrase(change: float) -> str:
    if change > 0:
        return f"increased by {change:.1f}%"
    if change < 0:
        return f"decreased by {abs(change):.1f}%"
    return "unchanged"


def weekly_message(summary: FinancialSummary) -> str:
    message = (
        f"This week's summary: Income: {format_currency(summary.total_income)}, "
        f"Expenses: {format_currency(summary.total_expenses)}, "
    )
    message += _cashflow_sentence(summary, "week")
    top = summary.top_spending_category
    if top:
        message += f" Your highest spending category was {top['name']}: {format_currency(top['amount'])}."
    return message


def monthly_message(summary: FinancialSummary) -> str:
    message = (
        f"Your {summary.month} {summary.year} summary: Income: {format_currency(summary.total_income)}, "
        f"Expenses: {format_currency(summary.total_expenses)}, "
    )
    message += _cashflow_sentence(summary, "month")

    if summary.income_change is not None:
        message += f" Compared to last month: Income {_change_phrase(summary.income_change)}, "
        message += f"Expenses {_change_phrase(summary.expense_change)}, "
        change = summary.savings_rate_change
        if change > 0:
            message += f"Savings rate increased by {change:.1f} percentage points."
        elif change < 0:
            message += f"Savings rate decreased by {abs(change):.1f} percentage points."
        else:
            message += "Savings rate unchanged."

    if summary.top_spending_categories:
        listed = ", ".join(
            f"{c['name']} ({format_currency(c['amount'])})" for c in summary.top_spending_categories
        )
        message += f" Top spending categories: {listed}."

    completed = [g for g in summary.goals if g.get("completed")]
    if completed:
        plural = "s" if len(completed) > 1 else ""
        message += f" You achieved {len(completed)} financial goal{plural} this month!"
    return message
