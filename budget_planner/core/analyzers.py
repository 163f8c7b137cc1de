"""Pure analysis functions for budget data.

All functions take already-loaded values and return result dataclasses.
Nothing here does I/O, so the logic is testable without mocking.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Mapping, Sequence

from budget_planner.core.store import BudgetStore
from budget_planner.models.results import BudgetAnalytics, BudgetSummary
from budget_planner.models.schemas import BudgetTrend

ZERO = Decimal("0")

TREND_WINDOW = 6
VOLATILITY_THRESHOLD = Decimal("0.20")
CHANGE_THRESHOLD = Decimal("0.10")

VARIANCE_THRESHOLD = Decimal("10000")
MAX_CATEGORIES_BEFORE_CONSOLIDATION = 15

REDUCE_SPENDING = "Consider reducing spending in high-cost categories"
INCREASE_SAVINGS = "You're under budget — consider increasing savings"
EVEN_OUT = "Consider evening out monthly budget allocations"
CONSOLIDATE = "Consider consolidating similar categories"
GET_STARTED = "Set up your first budget categories"


def _mean(values: Sequence[Decimal]) -> Decimal:
    return sum(values, ZERO) / len(values)


# --- Trend ---


def classify_trend(monthly_totals: Sequence[Decimal]) -> BudgetTrend:
    """Classify the most recent monthly totals as a budget trend.

    Uses percentage changes between adjacent months in the last
    ``TREND_WINDOW`` totals, skipping pairs that start at zero. High
    volatility wins over direction.
    """
    if len(monthly_totals) < 2:
        return BudgetTrend.STABLE

    window = list(monthly_totals)[-TREND_WINDOW:]
    changes = [
        (curr - prev) / prev
        for prev, curr in zip(window, window[1:])
        if prev > 0
    ]
    if not changes:
        return BudgetTrend.STABLE

    average_change = _mean(changes)
    volatility = _mean([(c - average_change) ** 2 for c in changes]).sqrt()

    if volatility > VOLATILITY_THRESHOLD:
        return BudgetTrend.VOLATILE
    if average_change > CHANGE_THRESHOLD:
        return BudgetTrend.INCREASING
    if average_change < -CHANGE_THRESHOLD:
        return BudgetTrend.DECREASING
    return BudgetTrend.STABLE


def monthly_variance(monthly_totals: Sequence[Decimal]) -> Decimal:
    """Population variance of the monthly totals (0 for fewer than two)."""
    if len(monthly_totals) < 2:
        return ZERO
    mean = _mean(monthly_totals)
    return _mean([(t - mean) ** 2 for t in monthly_totals])


# --- Distribution & summary ---


def category_distribution(
    monthly_budgets: Mapping[int, Mapping[str, Decimal]],
) -> dict[str, Decimal]:
    """Sum each category across every month it appears in."""
    totals: dict[str, Decimal] = {}
    for bucket in monthly_budgets.values():
        for name, amount in bucket.items():
            totals[name] = totals.get(name, ZERO) + amount
    return totals


def compute_summary(store: BudgetStore, month: int) -> BudgetSummary:
    """Headline numbers for *month* of the store's year."""
    count = store.category_count(month)
    yearly = store.total_for_year()
    return BudgetSummary(
        total_yearly_budget=yearly,
        total_monthly_budget=store.total_for_month(month),
        category_count=count,
        average_monthly_budget=yearly / 12 if count > 0 else ZERO,
        largest_category=store.largest_category(month),
        smallest_category=store.smallest_category(month),
    )


# --- Recommendations ---


def build_recommendations(
    summary: BudgetSummary,
    variance: Decimal,
    spent: Decimal | None = None,
    *,
    variance_threshold: Decimal = VARIANCE_THRESHOLD,
    max_categories: int = MAX_CATEGORIES_BEFORE_CONSOLIDATION,
) -> list[str]:
    """Independent heuristics; every one that applies is returned in display order."""
    budgeted = summary.total_monthly_budget
    recommendations: list[str] = []

    if spent is not None and spent > budgeted:
        recommendations.append(REDUCE_SPENDING)
    if spent is not None and budgeted > 0 and spent / budgeted < Decimal("0.5"):
        recommendations.append(INCREASE_SAVINGS)
    if variance > variance_threshold:
        recommendations.append(EVEN_OUT)
    if summary.category_count > max_categories:
        recommendations.append(CONSOLIDATE)
    if budgeted == 0:
        recommendations.append(GET_STARTED)

    return recommendations


def compute_analytics(
    monthly_totals: Sequence[Decimal],
    current_month_categories: Mapping[str, Decimal],
    summary: BudgetSummary,
    *,
    monthly_budgets: Mapping[int, Mapping[str, Decimal]] | None = None,
    spent: Decimal | None = None,
) -> BudgetAnalytics:
    """Build a full analytics snapshot.

    *monthly_totals* is the ordered history used for trend and variance.
    The category distribution spans *monthly_budgets* when given, otherwise
    just the current month.
    """
    variance = monthly_variance(monthly_totals)
    distribution = category_distribution(
        monthly_budgets if monthly_budgets is not None else {0: current_month_categories}
    )
    return BudgetAnalytics(
        monthly_variance=variance,
        category_distribution=distribution,
        budget_trend=classify_trend(monthly_totals),
        recommendations=tuple(build_recommendations(summary, variance, spent)),
    )
