"""Result dataclasses for budget core outputs.

These are internal value types consumed by the session and formatters. They
are lightweight dataclasses rather than Pydantic models since they need no
validation. Snapshots are frozen and replaced wholesale.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Generic, TypeVar

from budget_planner.models.schemas import BudgetTrend, ViewStateKind

if TYPE_CHECKING:
    from budget_planner.core.errors import AppError

T = TypeVar("T")


@dataclass(frozen=True)
class CategoryValidation:
    """Outcome of validating a proposed category."""
    is_valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def has_issues(self) -> bool:
        return self.has_errors or self.has_warnings


@dataclass(frozen=True)
class BudgetSummary:
    """Headline numbers for the selected month and year."""
    total_yearly_budget: Decimal
    total_monthly_budget: Decimal
    category_count: int
    average_monthly_budget: Decimal
    largest_category: str | None = None
    smallest_category: str | None = None


@dataclass(frozen=True)
class BudgetAnalytics:
    """Derived analytics over a year of monthly budgets."""
    monthly_variance: Decimal
    category_distribution: dict[str, Decimal] = field(default_factory=dict)
    budget_trend: BudgetTrend = BudgetTrend.STABLE
    recommendations: tuple[str, ...] = ()


@dataclass(frozen=True)
class ViewState:
    """Coarse display state of a session, independent of the running operation."""
    kind: ViewStateKind = ViewStateKind.IDLE
    error: AppError | None = None

    @property
    def is_loading(self) -> bool:
        return self.kind is ViewStateKind.LOADING

    @property
    def has_error(self) -> bool:
        return self.kind is ViewStateKind.ERROR


@dataclass
class ImportResults(Generic[T]):
    """Parsed CSV rows with category bookkeeping and per-row warnings."""
    data: list[T]
    categories: set[str]
    existing_categories: set[str]
    new_categories: set[str]
    total_amount: Decimal
    warning_messages: list[str] = field(default_factory=list)
