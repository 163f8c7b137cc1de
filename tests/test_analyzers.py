"""Tests for budget_planner/core/analyzers.py."""

from decimal import Decimal

import pytest

from tests.conftest import make_store
from budget_planner.core.analyzers import (
    CONSOLIDATE,
    EVEN_OUT,
    GET_STARTED,
    INCREASE_SAVINGS,
    REDUCE_SPENDING,
    build_recommendations,
    category_distribution,
    classify_trend,
    compute_analytics,
    compute_summary,
    monthly_variance,
)
from budget_planner.models.results import BudgetSummary
from budget_planner.models.schemas import BudgetTrend


def _d(*values) -> list[Decimal]:
    return [Decimal(str(v)) for v in values]


def _summary(monthly: str = "1000", count: int = 3) -> BudgetSummary:
    return BudgetSummary(
        total_yearly_budget=Decimal(monthly) * 12,
        total_monthly_budget=Decimal(monthly),
        category_count=count,
        average_monthly_budget=Decimal(monthly),
    )


# --- Trend ---


class TestClassifyTrend:
    def test_flat_series_is_stable(self):
        assert classify_trend(_d(100, 100, 100, 100)) is BudgetTrend.STABLE

    def test_steady_growth_is_increasing(self):
        # every step doubles, so the changes are identical and volatility is zero
        assert classify_trend(_d(100, 200, 400, 800)) is BudgetTrend.INCREASING

    def test_steady_decline_is_decreasing(self):
        assert classify_trend(_d(1000, 850, 720)) is BudgetTrend.DECREASING

    def test_volatility_wins_over_direction(self):
        # average change is +50% but swings are large
        assert classify_trend(_d(100, 200, 100, 200)) is BudgetTrend.VOLATILE

    def test_small_changes_are_stable(self):
        assert classify_trend(_d(1000, 1050, 1000, 1040)) is BudgetTrend.STABLE

    @pytest.mark.parametrize("totals", [[], _d(100)])
    def test_fewer_than_two_points_is_stable(self, totals):
        assert classify_trend(totals) is BudgetTrend.STABLE

    def test_zero_starting_points_are_skipped(self):
        assert classify_trend(_d(0, 0)) is BudgetTrend.STABLE
        assert classify_trend(_d(0, 100, 100)) is BudgetTrend.STABLE

    def test_only_the_last_six_months_count(self):
        assert classify_trend(_d(50, 100, 100, 100, 100, 100, 100)) is BudgetTrend.STABLE
        assert classify_trend(_d(50, 100, 100, 100, 100, 100)) is BudgetTrend.VOLATILE


class TestMonthlyVariance:
    def test_population_variance(self):
        assert monthly_variance(_d(100, 200)) == Decimal("2500")

    def test_constant_series_has_zero_variance(self):
        assert monthly_variance(_d(300, 300, 300)) == 0

    def test_single_value_is_zero(self):
        assert monthly_variance(_d(100)) == 0


# --- Distribution & summary ---


class TestCategoryDistribution:
    def test_sums_across_months(self):
        store = make_store(m1={"Rent": "1000", "Food": "200"}, m2={"Rent": "1000"})
        dist = category_distribution(store.monthly_budgets)
        assert dist == {"Rent": Decimal("2000"), "Food": Decimal("200")}

    def test_empty(self):
        assert category_distribution({}) == {}


class TestComputeSummary:
    def test_summary_for_month(self):
        store = make_store(m1={"A": "100"}, m6={"A": "300", "B": "100"})
        summary = compute_summary(store, 6)
        assert summary.total_yearly_budget == Decimal("500")
        assert summary.total_monthly_budget == Decimal("400")
        assert summary.category_count == 2
        assert summary.average_monthly_budget == Decimal("500") / 12
        assert summary.largest_category == "A"
        assert summary.smallest_category == "B"

    def test_empty_month_has_zero_average(self):
        store = make_store(m1={"A": "100"})
        summary = compute_summary(store, 6)
        assert summary.category_count == 0
        assert summary.average_monthly_budget == 0
        assert summary.largest_category is None


# --- Recommendations ---


class TestBuildRecommendations:
    def test_no_advice_for_healthy_budget(self):
        assert build_recommendations(_summary(), Decimal("0"), Decimal("800")) == []

    def test_overspending(self):
        recs = build_recommendations(_summary(), Decimal("0"), Decimal("1200"))
        assert recs == [REDUCE_SPENDING]

    def test_low_utilization(self):
        recs = build_recommendations(_summary(), Decimal("0"), Decimal("400"))
        assert recs == [INCREASE_SAVINGS]

    def test_spending_ignored_when_unknown(self):
        assert build_recommendations(_summary(), Decimal("0")) == []

    def test_high_variance(self):
        recs = build_recommendations(_summary(), Decimal("10001"))
        assert recs == [EVEN_OUT]

    def test_too_many_categories(self):
        recs = build_recommendations(_summary(count=16), Decimal("0"))
        assert recs == [CONSOLIDATE]

    def test_empty_budget(self):
        recs = build_recommendations(_summary(monthly="0", count=0), Decimal("0"))
        assert recs == [GET_STARTED]

    def test_multiple_rules_in_order(self):
        recs = build_recommendations(_summary(count=20), Decimal("50000"), Decimal("2000"))
        assert recs == [REDUCE_SPENDING, EVEN_OUT, CONSOLIDATE]


class TestComputeAnalytics:
    def test_full_snapshot(self):
        store = make_store(m1={"Rent": "1000"}, m2={"Rent": "1000", "Food": "400"})
        summary = compute_summary(store, 2)
        analytics = compute_analytics(
            [store.total_for_month(1), store.total_for_month(2)],
            store.budget_for_month(2),
            summary,
            monthly_budgets=store.monthly_budgets,
        )
        assert analytics.budget_trend is BudgetTrend.INCREASING
        assert analytics.monthly_variance == Decimal("40000")
        assert analytics.category_distribution == {"Rent": Decimal("2000"), "Food": Decimal("400")}
        assert analytics.recommendations == (EVEN_OUT,)

    def test_distribution_defaults_to_current_month(self):
        store = make_store(m1={"Rent": "1000"}, m2={"Food": "400"})
        analytics = compute_analytics([], store.budget_for_month(2), compute_summary(store, 2))
        assert analytics.category_distribution == {"Food": Decimal("400")}
