"""Budget editing session.

Orchestrates a :class:`BudgetStore`, category validation and analytics
against an injected persistence repository. Every public operation runs
through :meth:`BudgetSession._perform`, which owns the operation tag, view
state transitions, error reporting and timing.
"""

from __future__ import annotations

import logging
import time
from datetime import date, datetime
from decimal import Decimal
from typing import Awaitable, Callable, Iterable, Optional

from budget_planner.config import BudgetConfig
from budget_planner.core.analyzers import compute_analytics, compute_summary
from budget_planner.core.csv_io import (
    export_budgets_csv,
    export_entries_csv,
    parse_budgets_csv,
    parse_purchases_csv,
)
from budget_planner.core.debounce import Debouncer
from budget_planner.core.errors import (
    AppError,
    BudgetValidationError,
    CategoryNotFoundError,
    ErrorReporter,
    LoggingErrorReporter,
)
from budget_planner.core.repository import BudgetRepository
from budget_planner.core.store import BudgetStore
from budget_planner.core.validation import (
    REQUIRED_CATEGORIES,
    validate_category,
    validate_category_update,
    validate_month,
)
from budget_planner.models.results import (
    BudgetAnalytics,
    BudgetSummary,
    CategoryValidation,
    ImportResults,
    ViewState,
)
from budget_planner.models.schemas import (
    BudgetEntry,
    DateRange,
    MonthlyBudget,
    OperationType,
    TimePeriod,
    ViewStateKind,
    to_amount,
)

logger = logging.getLogger(__name__)

SLOW_OPERATION_SECONDS = 1.0
NEW_CATEGORY_FIELD = "new_category"

Listener = Callable[["BudgetSession"], None]


class BudgetSession:
    """Stateful budget editor for one year at a time.

    State changes are published to subscribers registered with
    :meth:`subscribe`. At most one operation is expected to run at a time;
    callers should check :attr:`is_processing` before starting another.
    """

    def __init__(
        self,
        repository: BudgetRepository,
        error_reporter: Optional[ErrorReporter] = None,
        config: Optional[BudgetConfig] = None,
        *,
        year: Optional[int] = None,
        month: Optional[int] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.repository = repository
        self.error_reporter = error_reporter or LoggingErrorReporter()
        self.config = config or BudgetConfig()
        self.limits = self.config.validation_limits()
        self._clock = clock

        now = clock()
        self.store = BudgetStore(year or now.year)
        self.selected_month = validate_month(month or now.month)

        self.view_state = ViewState()
        self.current_operation: Optional[OperationType] = None
        self.has_unsaved_changes = False
        self.last_save_date: Optional[datetime] = None
        self.validation_errors: dict[str, list[str]] = {}
        self.operation_metrics: dict[str, float] = {}
        self.spent: Optional[Decimal] = None
        # names the repository holds for the selected year, by month
        self._persisted: dict[int, set[str]] = {}

        self.summary: BudgetSummary
        self.analytics: BudgetAnalytics
        self._recompute()

        self._listeners: list[Listener] = []
        self._autosave = Debouncer(self.config.autosave_delay, self._autosave_if_possible)

    # --- Derived state ---

    @property
    def selected_year(self) -> int:
        return self.store.year

    @property
    def is_processing(self) -> bool:
        return self.current_operation is not None or self.view_state.is_loading

    @property
    def has_error(self) -> bool:
        return self.view_state.has_error

    @property
    def can_save(self) -> bool:
        return self.has_unsaved_changes and not self.is_processing and not self.has_error

    @property
    def autosave_pending(self) -> bool:
        return self._autosave.pending

    # --- Observers ---

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Session listener %r failed", listener)

    # --- Operation plumbing ---

    async def _perform(
        self,
        operation: OperationType,
        block: Callable[[], Awaitable[None]],
        field: Optional[str] = None,
    ) -> bool:
        """Run *block* as *operation*. Returns ``True`` on success.

        Validation failures are recorded in :attr:`validation_errors` under
        *field* (or the error's own field) and are not reported. Anything
        else moves the view into the error state and goes to the reporter.
        """
        started = time.perf_counter()
        self.current_operation = operation
        if not self.view_state.is_loading:
            self.view_state = ViewState(ViewStateKind.LOADING)
        self._notify()

        ok = False
        try:
            await block()
        except BudgetValidationError as e:
            key = e.field or field or operation.value
            self.validation_errors[key] = list(e.issues)
            self.current_operation = None
            self._refresh_view_state()
        except Exception as exc:
            error = AppError.from_exception(exc, saving=operation is not OperationType.LOAD)
            self.current_operation = None
            self.view_state = ViewState(ViewStateKind.ERROR, error)
            self.error_reporter.handle(error, operation.description)
        else:
            ok = True
            if field is not None:
                self.validation_errors.pop(field, None)
            self.current_operation = None
            self._refresh_view_state()
        finally:
            self._record_metric(operation.description, time.perf_counter() - started)
            self._notify()
        return ok

    def _refresh_view_state(self) -> None:
        kind = ViewStateKind.EMPTY if self.store.is_empty() else ViewStateKind.LOADED
        self.view_state = ViewState(kind)

    def _record_metric(self, description: str, duration: float) -> None:
        self.operation_metrics[description] = duration
        if duration > SLOW_OPERATION_SECONDS:
            logger.warning("Slow operation '%s' took %.2fms", description, duration * 1000)

    def _history(self) -> list[Decimal]:
        """Totals of non-empty months up to and including the selected month."""
        return [
            self.store.total_for_month(m)
            for m in range(1, self.selected_month + 1)
            if self.store.category_count(m) > 0
        ]

    def _recompute(self) -> None:
        self.summary = compute_summary(self.store, self.selected_month)
        self.analytics = compute_analytics(
            self._history(),
            self.store.budget_for_month(self.selected_month),
            self.summary,
            monthly_budgets=self.store.monthly_budgets,
            spent=self.spent,
        )

    def _mark_changed(self) -> None:
        self.has_unsaved_changes = True
        self._recompute()
        if self.config.autosave_delay > 0:
            self._autosave.schedule()

    async def _autosave_if_possible(self) -> None:
        if self.can_save:
            await self.save()

    def _resolve_month(self, month: Optional[int]) -> int:
        return validate_month(self.selected_month if month is None else month)

    def _remember_persisted(self) -> None:
        self._persisted = {
            month: set(bucket) for month, bucket in self.store.monthly_budgets.items()
        }

    def _forget_persisted(self, name: str, month: int, propagate: bool) -> None:
        for m in range(month, 13 if propagate else month + 1):
            self._persisted.get(m, set()).discard(name)

    # --- Loading ---

    async def load(self, year: Optional[int] = None) -> bool:
        """Load *year* (default: the selected year) from the repository."""
        target = self.selected_year if year is None else year

        async def block():
            await self.store.load_year(target, self.repository)
            self._remember_persisted()
            self._autosave.cancel()
            self.has_unsaved_changes = False
            self._recompute()
            logger.info("Loaded budgets for %s", target)

        return await self._perform(OperationType.LOAD, block)

    async def retry(self) -> bool:
        return await self.load()

    async def change_year(self, year: int) -> bool:
        if year == self.selected_year:
            return True
        return await self.load(year)

    def change_month(self, month: int) -> bool:
        try:
            self.selected_month = validate_month(month)
        except BudgetValidationError as e:
            self.validation_errors["month"] = list(e.issues)
            self._notify()
            return False
        self.validation_errors.pop("month", None)
        self._recompute()
        self._notify()
        return True

    async def copy_year_into_selected(self, source_year: int) -> bool:
        """Replace the selected year's budgets with a copy of *source_year*'s.

        Categories the selected year no longer has are deleted from the
        repository on the next save.
        """
        if source_year == self.selected_year:
            return True

        async def block():
            source = BudgetStore(source_year)
            await source.load_year(source_year, self.repository)
            self.store.copy_from(source.monthly_budgets)
            self._mark_changed()
            logger.info("Copied %s budgets into %s", source_year, self.selected_year)

        return await self._perform(OperationType.LOAD, block)

    def set_spent(self, amount: Optional[Decimal]) -> None:
        """Record spending for the selected month so advice can use utilization."""
        self.spent = None if amount is None else to_amount(amount)
        self._recompute()
        self._notify()

    # --- Validation ---

    def validate_new_category(self, name: str, amount: Decimal) -> CategoryValidation:
        """Validate live input for a new category and publish any issues."""
        existing = self.store.budget_for_month(self.selected_month)
        result = validate_category(name, amount, existing, self.limits)
        if result.has_issues:
            self.validation_errors[NEW_CATEGORY_FIELD] = list(result.errors + result.warnings)
        else:
            self.validation_errors.pop(NEW_CATEGORY_FIELD, None)
        self._notify()
        return result

    def _check_all(self) -> None:
        problems = []
        for month, name, amount in self.store.entries():
            if amount < 0:
                problems.append(f"Month {month}, {name}: Amount must be non-negative")
            if not name.strip():
                problems.append(f"Month {month}: Category name cannot be empty")
        if problems:
            raise BudgetValidationError(
                f"Validation errors: {'; '.join(problems)}", field="budgets", issues=problems
            )

    async def validate_budgets(self) -> bool:
        """Check every stored amount and name."""

        async def block():
            self._check_all()

        return await self._perform(OperationType.VALIDATE, block, field="budgets")

    # --- Saving ---

    async def save(self) -> bool:
        """Persist every category amount; a no-op without unsaved changes.

        Names the repository still holds for a month the store no longer has
        are deleted first.
        """
        if not self.has_unsaved_changes:
            return True

        async def block():
            self._check_all()
            year = self.selected_year
            for month, names in sorted(self._persisted.items()):
                current = self.store.budget_for_month(month)
                for name in sorted(names - set(current)):
                    await self.repository.delete_monthly_budget(name, month, year, False)
                    names.discard(name)
            for month, name, amount in self.store.entries():
                await self.repository.update_category_amount(name, amount, month, year)
            await self.repository.save_current_state()
            self._remember_persisted()
            self._autosave.cancel()
            self.has_unsaved_changes = False
            self.last_save_date = self._clock()
            logger.info("Saved budgets for %s", year)

        return await self._perform(OperationType.SAVE, block, field="budgets")

    # --- Category mutations ---

    async def add_category(
        self,
        name: str,
        amount: Decimal,
        propagate_to_future_months: bool = False,
        month: Optional[int] = None,
    ) -> bool:
        async def block():
            target = self._resolve_month(month)
            trimmed = name.strip()
            value = to_amount(amount)
            result = validate_category(
                trimmed, value, self.store.budget_for_month(target), self.limits
            )
            if not result.is_valid:
                raise BudgetValidationError(
                    result.errors[0], field=NEW_CATEGORY_FIELD, issues=list(result.errors)
                )

            year = self.selected_year
            last = 12 if propagate_to_future_months else target
            written: list[int] = []
            try:
                for m in range(target, last + 1):
                    await self.repository.add_category(trimmed, value, m, year)
                    written.append(m)
            except Exception:
                await self._roll_back_add(trimmed, written, year)
                raise
            for m in written:
                self._persisted.setdefault(m, set()).add(trimmed)
            self.store.add_category(target, trimmed, value, propagate_to_future_months)
            self._mark_changed()
            logger.info("Added category '%s' with amount %s", trimmed, value)

        return await self._perform(OperationType.ADD_CATEGORY, block, field=NEW_CATEGORY_FIELD)

    async def _roll_back_add(self, name: str, months: list[int], year: int) -> None:
        """Undo the months a failed add already wrote.

        Months that held *name* before get their old amount back; the rest
        lose it.
        """
        for m in months:
            previous = self.store.budget_for_month(m).get(name)
            try:
                if previous is None:
                    await self.repository.delete_monthly_budget(name, m, year, False)
                else:
                    await self.repository.update_category_amount(name, previous, m, year)
            except Exception:
                logger.exception("Could not roll back '%s' for %s/%s", name, m, year)
                # the next save reconciles it
                self._persisted.setdefault(m, set()).add(name)

    async def update_category(
        self,
        old_name: str,
        new_name: str,
        amount: Decimal,
        propagate_to_future_months: bool = False,
        month: Optional[int] = None,
    ) -> bool:
        """Rename and/or re-amount a category. A zero amount removes it."""

        async def block():
            target = self._resolve_month(month)
            trimmed = new_name.strip()
            value = to_amount(amount)
            existing = self.store.budget_for_month(target)
            if old_name not in existing:
                raise CategoryNotFoundError(old_name, target)
            result = validate_category_update(old_name, trimmed, value, existing, self.limits)
            if not result.is_valid:
                raise BudgetValidationError(
                    result.errors[0], field=old_name, issues=list(result.errors)
                )

            renamed = trimmed != old_name
            if renamed or value == 0:
                await self.repository.delete_monthly_budget(
                    old_name, target, self.selected_year, propagate_to_future_months
                )
                self._forget_persisted(old_name, target, propagate_to_future_months)
            if renamed or value == 0 or propagate_to_future_months:
                self.store.rename_and_update(
                    target, old_name, trimmed, value, propagate_to_future_months
                )
            else:
                self.store.update_category(target, old_name, value)
            self._mark_changed()
            logger.info("Updated category '%s' to '%s' with amount %s", old_name, trimmed, value)

        return await self._perform(OperationType.UPDATE_CATEGORY, block, field=old_name)

    async def delete_category(
        self,
        name: str,
        from_month: Optional[int] = None,
        propagate_to_future_months: bool = False,
    ) -> bool:
        async def block():
            if name in REQUIRED_CATEGORIES:
                raise BudgetValidationError(
                    f"Cannot delete required category '{name}'", field=name
                )
            target = self._resolve_month(from_month)
            await self.repository.delete_monthly_budget(
                name, target, self.selected_year, propagate_to_future_months
            )
            self._forget_persisted(name, target, propagate_to_future_months)
            self.store.delete_category(name, target, propagate_to_future_months)
            self._mark_changed()
            logger.info("Deleted category '%s'", name)

        return await self._perform(OperationType.DELETE_CATEGORY, block, field=name)

    # --- Import / export ---

    def budget_rows(self) -> list[MonthlyBudget]:
        year = self.selected_year
        return [
            MonthlyBudget(category=name, amount=amount, month=month, year=year)
            for month, name, amount in self.store.entries()
        ]

    async def export_purchases_csv(
        self,
        entries: Iterable[BudgetEntry],
        period: TimePeriod | DateRange = TimePeriod.ALL_TIME,
        today: Optional[date] = None,
    ) -> Optional[str]:
        """CSV text for the purchases inside *period*, or ``None`` on failure."""
        output: list[str] = []

        async def block():
            output.append(export_entries_csv(entries, period, today))

        ok = await self._perform(OperationType.EXPORT, block)
        return output[0] if ok else None

    async def export_budgets_csv(self) -> Optional[str]:
        """CSV text for the selected year's budgets, or ``None`` on failure."""
        output: list[str] = []

        async def block():
            output.append(export_budgets_csv(self.budget_rows()))

        ok = await self._perform(OperationType.EXPORT, block)
        return output[0] if ok else None

    async def import_budgets_csv(self, content: str) -> Optional[ImportResults[MonthlyBudget]]:
        """Merge budget rows for the selected year into the store.

        Rows for other years are skipped with a warning. Imported amounts
        overwrite existing ones.
        """
        output: list[ImportResults[MonthlyBudget]] = []

        async def block():
            results = parse_budgets_csv(content, self.store.available_categories())
            applied = 0
            for row in results.data:
                if row.year != self.selected_year:
                    results.warning_messages.append(
                        f"Skipped {row.category} for {row.month}/{row.year}: "
                        f"not in {self.selected_year}"
                    )
                    continue
                self.store.add_category(row.month, row.category, row.amount)
                applied += 1
            if applied:
                self._mark_changed()
            logger.info("Imported %d budget rows", applied)
            output.append(results)

        ok = await self._perform(OperationType.IMPORT, block)
        return output[0] if ok else None

    async def import_purchases_csv(self, content: str) -> Optional[ImportResults[BudgetEntry]]:
        """Parse purchase rows, classifying their categories against the store."""
        output: list[ImportResults[BudgetEntry]] = []

        async def block():
            output.append(parse_purchases_csv(content, self.store.available_categories()))

        ok = await self._perform(OperationType.IMPORT, block)
        return output[0] if ok else None

    # --- Lifecycle ---

    async def close(self, flush: bool = False) -> None:
        """Stop auto-save; with *flush*, run a pending save first."""
        if flush:
            await self._autosave.flush()
        self._autosave.cancel()
