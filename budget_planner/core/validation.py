"""Category validation rules.

Pure functions: every applicable rule runs so callers can show all issues
at once. Errors invalidate; warnings never do.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from budget_planner.core.errors import BudgetValidationError
from budget_planner.models.results import CategoryValidation
from budget_planner.models.schemas import ValidationLimits, format_currency

EMPTY_NAME = "Category name cannot be empty"
DUPLICATE_NAME = "Category already exists for this month"
NEGATIVE_AMOUNT = "Amount must be non-negative"
ZERO_AMOUNT = "Amount is zero — category will not contribute to budget"
LARGE_AMOUNT = "Large amount — please verify this is correct"

# Categories that can never be deleted
REQUIRED_CATEGORIES = frozenset({"Uncategorized", "Housing", "Food", "Utilities"})


def _is_duplicate(name: str, existing_names: Iterable[str], case_insensitive: bool) -> bool:
    if case_insensitive:
        folded = name.casefold()
        return any(folded == n.casefold() for n in existing_names)
    return name in set(existing_names)


def validate_category(
    name: str,
    amount: Decimal,
    existing_names: Iterable[str] = (),
    limits: ValidationLimits | None = None,
) -> CategoryValidation:
    """Check a proposed category name and amount for one month."""
    limits = limits or ValidationLimits()
    errors: list[str] = []
    warnings: list[str] = []

    trimmed = name.strip()
    if not trimmed:
        errors.append(EMPTY_NAME)
    if len(trimmed) > limits.max_name_length:
        errors.append(f"Category name must be {limits.max_name_length} characters or less")
    if trimmed and _is_duplicate(trimmed, existing_names, limits.case_insensitive_duplicates):
        errors.append(DUPLICATE_NAME)

    if amount < limits.min_amount:
        if limits.min_amount == 0:
            errors.append(NEGATIVE_AMOUNT)
        else:
            errors.append(f"Amount must be at least {format_currency(limits.min_amount)}")
    if amount > limits.max_amount:
        errors.append(f"Amount cannot exceed {format_currency(limits.max_amount)}")
    if amount == 0:
        warnings.append(ZERO_AMOUNT)
    if amount > limits.large_amount_threshold:
        warnings.append(LARGE_AMOUNT)

    return CategoryValidation(
        is_valid=not errors,
        errors=tuple(errors),
        warnings=tuple(warnings),
    )


def validate_category_update(
    old_name: str,
    new_name: str,
    amount: Decimal,
    existing_names: Iterable[str] = (),
    limits: ValidationLimits | None = None,
) -> CategoryValidation:
    """Validate a rename/re-amount. Keeping the old name is not a duplicate."""
    others = [n for n in existing_names if n != old_name]
    return validate_category(new_name, amount, others, limits)


def validate_month(month: int) -> int:
    """Raise :class:`BudgetValidationError` unless *month* is 1-12."""
    if not 1 <= month <= 12:
        raise BudgetValidationError(f"Month must be between 1 and 12, got {month}")
    return month
