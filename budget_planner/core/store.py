"""In-memory month-bucketed budget model for a single year."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterator

from budget_planner.core.errors import BudgetValidationError, CategoryNotFoundError
from budget_planner.core.repository import BudgetRepository

MONTHS = range(1, 13)
ZERO = Decimal("0")


class BudgetStore:
    """Maps month (1-12) to category name to budgeted amount.

    Mutations are synchronous and touch only memory; persistence is the
    caller's job. Month arguments are expected to be pre-validated.
    """

    def __init__(self, year: int, monthly_budgets: dict[int, dict[str, Decimal]] | None = None):
        self.year = year
        self._budgets: dict[int, dict[str, Decimal]] = {
            month: dict(bucket) for month, bucket in (monthly_budgets or {}).items()
        }

    @property
    def monthly_budgets(self) -> dict[int, dict[str, Decimal]]:
        """Copy of the month buckets."""
        return {month: dict(bucket) for month, bucket in self._budgets.items()}

    def _months(self, month: int, propagate: bool) -> range:
        return range(month, 13) if propagate else range(month, month + 1)

    # --- Mutations ---

    def add_category(
        self,
        month: int,
        name: str,
        amount: Decimal,
        propagate_to_future_months: bool = False,
    ) -> None:
        """Insert *name* into *month* (and every later month when propagating).

        Existing entries with the same name in later months are overwritten.
        """
        for m in self._months(month, propagate_to_future_months):
            self._budgets.setdefault(m, {})[name] = amount

    def update_category(self, month: int, name: str, new_amount: Decimal) -> None:
        if new_amount < 0:
            raise BudgetValidationError("Amount must be non-negative")
        bucket = self._budgets.setdefault(month, {})
        if name not in bucket:
            raise CategoryNotFoundError(name, month)
        bucket[name] = new_amount

    def rename_and_update(
        self,
        month: int,
        old_name: str,
        new_name: str,
        new_amount: Decimal,
        propagate_to_future_months: bool = False,
    ) -> None:
        """Replace *old_name* with *new_name*. A zero amount removes the category."""
        for m in self._months(month, propagate_to_future_months):
            bucket = self._budgets.setdefault(m, {})
            bucket.pop(old_name, None)
            if new_amount != 0:
                bucket[new_name] = new_amount

    def delete_category(
        self,
        name: str,
        from_month: int,
        propagate_to_future_months: bool = False,
    ) -> None:
        """Remove *name*; absent names are ignored."""
        for m in self._months(from_month, propagate_to_future_months):
            bucket = self._budgets.get(m)
            if bucket is not None:
                bucket.pop(name, None)

    def copy_from(self, monthly_budgets: dict[int, dict[str, Decimal]]) -> None:
        """Replace every month bucket with a copy of *monthly_budgets*."""
        self._budgets = {month: dict(bucket) for month, bucket in monthly_budgets.items()}

    # --- Readers ---

    def budget_for_month(self, month: int) -> dict[str, Decimal]:
        return dict(self._budgets.get(month, {}))

    def total_for_month(self, month: int) -> Decimal:
        return sum(self._budgets.get(month, {}).values(), ZERO)

    def total_for_year(self) -> Decimal:
        return sum((self.total_for_month(m) for m in self._budgets), ZERO)

    def category_count(self, month: int) -> int:
        return len(self._budgets.get(month, {}))

    def available_categories(self) -> list[str]:
        names: set[str] = set()
        for bucket in self._budgets.values():
            names.update(bucket)
        return sorted(names)

    def largest_category(self, month: int) -> str | None:
        bucket = self._budgets.get(month, {})
        return max(bucket, key=bucket.__getitem__) if bucket else None

    def smallest_category(self, month: int) -> str | None:
        bucket = self._budgets.get(month, {})
        return min(bucket, key=bucket.__getitem__) if bucket else None

    def monthly_totals(self) -> list[Decimal]:
        """Totals for January through December, zero for empty months."""
        return [self.total_for_month(m) for m in MONTHS]

    def entries(self) -> Iterator[tuple[int, str, Decimal]]:
        for month in sorted(self._budgets):
            for name, amount in sorted(self._budgets[month].items()):
                yield month, name, amount

    def is_empty(self) -> bool:
        return not any(self._budgets.values())

    # --- Loading ---

    async def load_year(self, year: int, source: BudgetRepository) -> None:
        """Replace all buckets with *year*'s budgets from *source*.

        The store is left untouched if any month fails to load.
        """
        loaded: dict[int, dict[str, Decimal]] = {}
        for month in MONTHS:
            rows = await source.get_monthly_budgets(month, year)
            loaded[month] = {row.category: row.amount for row in rows}
        self.year = year
        self._budgets = loaded
