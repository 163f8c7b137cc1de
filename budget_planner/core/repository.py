"""Persistence collaborators for monthly budgets.

:class:`BudgetRepository` is the interface a session depends on. The local
implementations keep budgets in memory; the JSON variant also persists them
to disk on :meth:`save_current_state`.
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional, Protocol

from budget_planner.core.errors import DataLoadError, DataSaveError
from budget_planner.models.schemas import MonthlyBudget

logger = logging.getLogger(__name__)

DEFAULT_DATA_FILE = Path.home() / ".budget-planner" / "budgets.json"


class BudgetRepository(Protocol):
    """Async persistence interface for month-bucketed budgets."""

    async def get_monthly_budgets(self, month: int, year: int) -> list[MonthlyBudget]:
        """Get every category budget for a month."""
        ...

    async def add_category(self, name: str, amount: Decimal, month: int, year: int) -> None:
        """Create a category budget for a month."""
        ...

    async def update_category_amount(
        self, category: str, amount: Decimal, month: int, year: int
    ) -> None:
        """Set a category's amount for a month."""
        ...

    async def delete_monthly_budget(
        self, category: str, from_month: int, year: int, include_future_months: bool = False
    ) -> None:
        """Remove a category from a month, optionally through December."""
        ...

    async def save_current_state(self) -> None:
        """Commit pending writes."""
        ...


class InMemoryBudgetRepository:
    """Dict-backed repository. Nothing survives the process."""

    def __init__(self, budgets: Optional[dict[int, dict[int, dict[str, Decimal]]]] = None):
        # year -> month -> category -> amount, copied so callers keep their dict
        self._budgets: dict[int, dict[int, dict[str, Decimal]]] = {
            year: {month: dict(bucket) for month, bucket in months.items()}
            for year, months in (budgets or {}).items()
        }

    def _month(self, month: int, year: int) -> dict[str, Decimal]:
        return self._budgets.setdefault(year, {}).setdefault(month, {})

    async def get_monthly_budgets(self, month: int, year: int) -> list[MonthlyBudget]:
        bucket = self._budgets.get(year, {}).get(month, {})
        return [
            MonthlyBudget(category=name, amount=amount, month=month, year=year)
            for name, amount in sorted(bucket.items())
        ]

    async def add_category(self, name: str, amount: Decimal, month: int, year: int) -> None:
        self._month(month, year)[name] = amount

    async def update_category_amount(
        self, category: str, amount: Decimal, month: int, year: int
    ) -> None:
        self._month(month, year)[category] = amount

    async def delete_monthly_budget(
        self, category: str, from_month: int, year: int, include_future_months: bool = False
    ) -> None:
        last = 12 if include_future_months else from_month
        for month in range(from_month, last + 1):
            self._budgets.get(year, {}).get(month, {}).pop(category, None)

    async def save_current_state(self) -> None:
        return None

    def snapshot(self) -> dict[int, dict[int, dict[str, Decimal]]]:
        """Deep copy of everything stored, for inspection."""
        return {
            year: {month: dict(bucket) for month, bucket in months.items()}
            for year, months in self._budgets.items()
        }


class JSONFileBudgetRepository(InMemoryBudgetRepository):
    """Repository that loads from and saves to a JSON file.

    The file is read lazily on first access. Writes stay in memory until
    :meth:`save_current_state`.
    """

    def __init__(self, data_file: Optional[str | Path] = None):
        super().__init__()
        self._data_file = Path(data_file) if data_file else DEFAULT_DATA_FILE
        self._loaded = False

    @property
    def data_file(self) -> Path:
        return self._data_file

    def _load(self):
        """Load budgets from disk."""
        if self._loaded:
            return
        if self._data_file.exists():
            try:
                raw = json.loads(self._data_file.read_text(encoding="utf-8"))
                self._budgets = {
                    int(year): {
                        int(month): {name: Decimal(amount) for name, amount in bucket.items()}
                        for month, bucket in months.items()
                    }
                    for year, months in raw.items()
                }
            except (OSError, json.JSONDecodeError, InvalidOperation, ValueError, AttributeError) as e:
                raise DataLoadError(f"Could not read {self._data_file}", detail=str(e)) from e
            logger.debug("Loaded budgets from %s", self._data_file)
        self._loaded = True

    def _save(self):
        """Persist budgets to disk."""
        payload = {
            str(year): {
                str(month): {name: str(amount) for name, amount in sorted(bucket.items())}
                for month, bucket in sorted(months.items())
                if bucket
            }
            for year, months in sorted(self._budgets.items())
        }
        try:
            self._data_file.parent.mkdir(parents=True, exist_ok=True)
            self._data_file.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as e:
            raise DataSaveError(f"Could not write {self._data_file}", detail=str(e)) from e
        logger.debug("Saved budgets to %s", self._data_file)

    async def get_monthly_budgets(self, month: int, year: int) -> list[MonthlyBudget]:
        self._load()
        return await super().get_monthly_budgets(month, year)

    async def add_category(self, name: str, amount: Decimal, month: int, year: int) -> None:
        self._load()
        await super().add_category(name, amount, month, year)

    async def update_category_amount(
        self, category: str, amount: Decimal, month: int, year: int
    ) -> None:
        self._load()
        await super().update_category_amount(category, amount, month, year)

    async def delete_monthly_budget(
        self, category: str, from_month: int, year: int, include_future_months: bool = False
    ) -> None:
        self._load()
        await super().delete_monthly_budget(category, from_month, year, include_future_months)

    async def save_current_state(self) -> None:
        self._load()
        self._save()
