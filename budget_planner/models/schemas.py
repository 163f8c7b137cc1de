"""Pydantic models for budget data types."""

from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# --- Amounts are Decimal currency values, rounded to cents ---

CENT = Decimal("0.01")

_CURRENCY_SYMBOLS = {
    "USD": "$",
    "CAD": "$",
    "AUD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
}


def to_amount(value: Decimal | float | int | str) -> Decimal:
    """Coerce a number to a Decimal rounded to cents."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(amount: Decimal | float | int, currency: str = "USD") -> str:
    """Format an amount as currency text, e.g. ``$1,234.56`` or ``-$5.00``."""
    value = to_amount(amount)
    sign = "-" if value < 0 else ""
    digits = f"{abs(value):,.2f}"
    symbol = _CURRENCY_SYMBOLS.get(currency.upper())
    if symbol is None:
        return f"{sign}{currency.upper()} {digits}"
    return f"{sign}{symbol}{digits}"


# --- Enums ---

class BudgetTrend(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"
    VOLATILE = "volatile"


class OperationType(str, Enum):
    LOAD = "load"
    SAVE = "save"
    ADD_CATEGORY = "add_category"
    UPDATE_CATEGORY = "update_category"
    DELETE_CATEGORY = "delete_category"
    VALIDATE = "validate"
    EXPORT = "export"
    IMPORT = "import"

    @property
    def description(self) -> str:
        return _OPERATION_DESCRIPTIONS[self]


_OPERATION_DESCRIPTIONS = {
    OperationType.LOAD: "Loading budgets",
    OperationType.SAVE: "Saving budgets",
    OperationType.ADD_CATEGORY: "Adding category",
    OperationType.UPDATE_CATEGORY: "Updating category",
    OperationType.DELETE_CATEGORY: "Deleting category",
    OperationType.VALIDATE: "Validating category",
    OperationType.EXPORT: "Exporting data",
    OperationType.IMPORT: "Importing data",
}


class ViewStateKind(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    EMPTY = "empty"
    ERROR = "error"


class DateRange(BaseModel):
    """Inclusive date range used to filter purchase entries."""
    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


def _month_start(day: date) -> date:
    return day.replace(day=1)


def _add_months(day: date, months: int) -> date:
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


class TimePeriod(str, Enum):
    TODAY = "today"
    YESTERDAY = "yesterday"
    THIS_WEEK = "this_week"
    LAST_WEEK = "last_week"
    THIS_MONTH = "this_month"
    LAST_MONTH = "last_month"
    THIS_QUARTER = "this_quarter"
    LAST_QUARTER = "last_quarter"
    THIS_YEAR = "this_year"
    LAST_YEAR = "last_year"
    LAST_7_DAYS = "last_7_days"
    LAST_30_DAYS = "last_30_days"
    LAST_90_DAYS = "last_90_days"
    LAST_12_MONTHS = "last_12_months"
    ALL_TIME = "all_time"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()

    def date_range(self, today: date | None = None) -> DateRange:
        """Resolve the period to a concrete inclusive range relative to *today*.

        Weeks start on Monday.
        """
        today = today or date.today()
        one_day = timedelta(days=1)

        if self is TimePeriod.TODAY:
            return DateRange(start=today, end=today)
        if self is TimePeriod.YESTERDAY:
            return DateRange(start=today - one_day, end=today - one_day)
        if self in (TimePeriod.THIS_WEEK, TimePeriod.LAST_WEEK):
            start = today - timedelta(days=today.weekday())
            if self is TimePeriod.LAST_WEEK:
                start -= timedelta(days=7)
            return DateRange(start=start, end=start + timedelta(days=6))
        if self in (TimePeriod.THIS_MONTH, TimePeriod.LAST_MONTH):
            start = _month_start(today)
            if self is TimePeriod.LAST_MONTH:
                start = _add_months(start, -1)
            return DateRange(start=start, end=_add_months(start, 1) - one_day)
        if self in (TimePeriod.THIS_QUARTER, TimePeriod.LAST_QUARTER):
            start = date(today.year, ((today.month - 1) // 3) * 3 + 1, 1)
            if self is TimePeriod.LAST_QUARTER:
                start = _add_months(start, -3)
            return DateRange(start=start, end=_add_months(start, 3) - one_day)
        if self is TimePeriod.THIS_YEAR:
            return DateRange(start=date(today.year, 1, 1), end=date(today.year, 12, 31))
        if self is TimePeriod.LAST_YEAR:
            return DateRange(start=date(today.year - 1, 1, 1), end=date(today.year - 1, 12, 31))
        if self is TimePeriod.LAST_7_DAYS:
            return DateRange(start=today - timedelta(days=7), end=today)
        if self is TimePeriod.LAST_30_DAYS:
            return DateRange(start=today - timedelta(days=30), end=today)
        if self is TimePeriod.LAST_90_DAYS:
            return DateRange(start=today - timedelta(days=90), end=today)
        if self is TimePeriod.LAST_12_MONTHS:
            return DateRange(start=_add_months(today.replace(day=1), -12), end=today)
        return DateRange(start=date.min, end=today)


# --- Domain Models ---

class BudgetEntry(BaseModel):
    """A single logged purchase."""
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    date: date
    amount: Decimal = Field(..., ge=0)
    category: str = Field(..., min_length=1)
    note: Optional[str] = None


class MonthlyBudget(BaseModel):
    """A category's budgeted amount for one month."""
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    category: str = Field(..., min_length=1)
    amount: Decimal = Field(..., ge=0)
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=1900, le=9999)
    is_historical: bool = False


class ValidationLimits(BaseModel):
    """Constraints applied when validating a category name and amount."""
    model_config = ConfigDict(frozen=True)

    max_name_length: int = Field(default=50, ge=1)
    max_amount: Decimal = Field(default=Decimal("999999.99"), gt=0)
    min_amount: Decimal = Field(default=Decimal("0"), ge=0)
    large_amount_threshold: Decimal = Field(default=Decimal("10000"), gt=0)
    case_insensitive_duplicates: bool = False


# --- MCP Tool Input Models ---


class GetMonthInput(BaseModel):
    """Input for viewing a single month's categories."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    month: Optional[int] = Field(
        None, ge=1, le=12, description="Month number (1-12). Defaults to the selected month."
    )


class AddCategoryInput(BaseModel):
    """Input for adding a budget category."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: str = Field(..., description="Category name (e.g. 'Groceries')")
    amount: Decimal = Field(..., description="Monthly budgeted amount")
    month: Optional[int] = Field(
        None, ge=1, le=12, description="Month number (1-12). Defaults to the selected month."
    )
    propagate_to_future_months: bool = Field(
        default=False, description="Also add the category to every later month of the year"
    )


class UpdateCategoryInput(BaseModel):
    """Input for renaming a category and/or changing its amount."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    old_name: str = Field(..., description="Current category name")
    new_name: Optional[str] = Field(
        None, description="New category name. Defaults to keeping the current name."
    )
    amount: Decimal = Field(..., description="New budgeted amount (0 removes the category)")
    month: Optional[int] = Field(None, ge=1, le=12)
    propagate_to_future_months: bool = False


class DeleteCategoryInput(BaseModel):
    """Input for removing a category from one or more months."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: str = Field(..., description="Category name to delete")
    from_month: Optional[int] = Field(None, ge=1, le=12)
    propagate_to_future_months: bool = False


class ValidateCategoryInput(BaseModel):
    """Input for checking a proposed category without saving it."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: str
    amount: Decimal


class ChangeYearInput(BaseModel):
    """Input for switching the year being edited."""
    model_config = ConfigDict(extra="forbid")

    year: int = Field(..., ge=1900, le=9999)
    copy_from_year: Optional[int] = Field(
        None, ge=1900, le=9999,
        description="Seed the new year with another year's budgets",
    )


class AnalyticsInput(BaseModel):
    """Input for budget analytics."""
    model_config = ConfigDict(extra="forbid")

    spent: Optional[Decimal] = Field(
        None, ge=0, description="Amount spent so far this month, used for utilization advice"
    )


class CSVTextInput(BaseModel):
    """Raw CSV text supplied to an import tool."""
    model_config = ConfigDict(extra="forbid")

    csv_text: str = Field(..., min_length=1, description="CSV file contents")


class ExportPurchasesInput(BaseModel):
    """Input for exporting purchases to CSV."""
    model_config = ConfigDict(extra="forbid")

    entries: list[BudgetEntry] = Field(..., description="Purchases to export")
    period: TimePeriod = Field(default=TimePeriod.ALL_TIME)
    start: Optional[date] = Field(None, description="Custom range start (overrides period)")
    end: Optional[date] = Field(None, description="Custom range end (overrides period)")

    @model_validator(mode="after")
    def _check_custom_range(self):
        if (self.start is None) != (self.end is None):
            raise ValueError("Custom range needs both start and end")
        if self.start is not None and self.end is not None and self.start > self.end:
            raise ValueError("Custom range start must be on or before end")
        return self

    def date_range(self, today: date | None = None) -> DateRange:
        if self.start is not None and self.end is not None:
            return DateRange(start=self.start, end=self.end)
        return self.period.date_range(today)
