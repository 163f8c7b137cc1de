"""Shared test fixtures for budget planner tests."""

from datetime import date
from decimal import Decimal

from budget_planner.config import BudgetConfig
from budget_planner.core.errors import AppError
from budget_planner.core.repository import InMemoryBudgetRepository
from budget_planner.core.store import BudgetStore
from budget_planner.models.schemas import BudgetEntry, MonthlyBudget


def make_entry(
    day: date = date(2024, 6, 15),
    amount: str = "42.50",
    category: str = "Groceries",
    note: str | None = None,
) -> BudgetEntry:
    return BudgetEntry(date=day, amount=Decimal(amount), category=category, note=note)


def make_budget(
    category: str = "Groceries",
    amount: str = "500.00",
    month: int = 6,
    year: int = 2024,
    is_historical: bool = False,
) -> MonthlyBudget:
    return MonthlyBudget(
        category=category,
        amount=Decimal(amount),
        month=month,
        year=year,
        is_historical=is_historical,
    )


def make_store(year: int = 2024, **months: dict[str, str]) -> BudgetStore:
    """Build a store from keyword months, e.g. ``make_store(m6={"Rent": "1200"})``."""
    budgets = {
        int(key[1:]): {name: Decimal(amount) for name, amount in bucket.items()}
        for key, bucket in months.items()
    }
    return BudgetStore(year, budgets)


def make_config(**overrides) -> BudgetConfig:
    values = {"autosave_delay": 0}
    values.update(overrides)
    return BudgetConfig(**values)


class RecordingRepository(InMemoryBudgetRepository):
    """In-memory repository that records every call and can be told to fail.

    ``fail_on`` holds method names, or ``(method, month)`` pairs to fail only
    for one month.
    """

    def __init__(self, budgets=None, fail_on: set | None = None):
        super().__init__(budgets)
        self.calls: list[tuple] = []
        self.fail_on = fail_on or set()

    def _record(self, name: str, *args, month: int | None = None):
        self.calls.append((name, *args))
        if name in self.fail_on or (name, month) in self.fail_on:
            raise OSError(f"{name} failed")

    async def get_monthly_budgets(self, month, year):
        self._record("get_monthly_budgets", month, year, month=month)
        return await super().get_monthly_budgets(month, year)

    async def add_category(self, name, amount, month, year):
        self._record("add_category", name, amount, month, year, month=month)
        await super().add_category(name, amount, month, year)

    async def update_category_amount(self, category, amount, month, year):
        self._record("update_category_amount", category, amount, month, year, month=month)
        await super().update_category_amount(category, amount, month, year)

    async def delete_monthly_budget(self, category, month, year, include_future_months):
        self._record(
            "delete_monthly_budget", category, month, year, include_future_months, month=month
        )
        await super().delete_monthly_budget(category, month, year, include_future_months)

    async def save_current_state(self):
        self._record("save_current_state")
        await super().save_current_state()

    def names(self) -> list[str]:
        return [call[0] for call in self.calls]


class RecordingReporter:
    def __init__(self):
        self.reports: list[tuple[AppError, str]] = []

    def handle(self, error: AppError, context: str) -> None:
        self.reports.append((error, context))
