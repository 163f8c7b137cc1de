"""Markdown formatters for MCP tool responses.

Pure functions that take domain objects and return human-readable Markdown strings.
"""

from __future__ import annotations

import calendar
from datetime import datetime
from decimal import Decimal
from typing import Mapping

from budget_planner.models.results import (
    BudgetAnalytics,
    BudgetSummary,
    CategoryValidation,
    ImportResults,
)
from budget_planner.models.schemas import format_currency


def _month_name(month: int) -> str:
    return calendar.month_name[month]


def format_summary(
    summary: BudgetSummary,
    year: int,
    month: int,
    currency: str = "USD",
    *,
    has_unsaved_changes: bool = False,
    last_save_date: datetime | None = None,
) -> str:
    lines = [
        f"## Budget Summary ({_month_name(month)} {year})\n",
        f"- **This month:** {format_currency(summary.total_monthly_budget, currency)}"
        f" across {summary.category_count} categories",
        f"- **This year:** {format_currency(summary.total_yearly_budget, currency)}",
        f"- **Monthly average:** {format_currency(summary.average_monthly_budget, currency)}",
    ]
    if summary.largest_category:
        lines.append(f"- **Largest category:** {summary.largest_category}")
    if summary.smallest_category:
        lines.append(f"- **Smallest category:** {summary.smallest_category}")

    if has_unsaved_changes:
        lines.append("\n_Unsaved changes._")
    elif last_save_date is not None:
        lines.append(f"\n_Last saved {last_save_date:%Y-%m-%d %H:%M}._")
    return "\n".join(lines)


def format_month(
    categories: Mapping[str, Decimal],
    year: int,
    month: int,
    currency: str = "USD",
) -> str:
    if not categories:
        return f"No categories budgeted for {_month_name(month)} {year}."

    lines = [
        f"## {_month_name(month)} {year}\n",
        "| Category | Amount |",
        "|---|---|",
    ]
    for name in sorted(categories):
        lines.append(f"| {name} | {format_currency(categories[name], currency)} |")
    total = sum(categories.values(), Decimal("0"))
    lines.append(f"\n**Total:** {format_currency(total, currency)}")
    return "\n".join(lines)


def format_validation(name: str, result: CategoryValidation) -> str:
    """Errors block the category; warnings are advisory."""
    if not result.has_issues:
        return f"**{name}** looks good."

    verdict = "can be added" if result.is_valid else "cannot be added"
    lines = [f"## [{'OK' if result.is_valid else '!!'}] '{name}' {verdict}\n"]
    if result.errors:
        lines.append("### Errors")
        lines.extend(f"- {e}" for e in result.errors)
    if result.warnings:
        lines.append("### Warnings")
        lines.extend(f"- {w}" for w in result.warnings)
    return "\n".join(lines)


def format_analytics(analytics: BudgetAnalytics, currency: str = "USD") -> str:
    lines = [
        "## Budget Analytics\n",
        f"- **Trend:** {analytics.budget_trend.value.capitalize()}",
        f"- **Monthly variance:** {analytics.monthly_variance:,.2f}",
    ]

    if analytics.category_distribution:
        lines.append("\n### Category Distribution")
        ranked = sorted(
            analytics.category_distribution.items(), key=lambda kv: (-kv[1], kv[0])
        )
        for name, total in ranked:
            lines.append(f"- {name}: {format_currency(total, currency)}")

    if analytics.recommendations:
        lines.append("\n### Recommendations")
        lines.extend(f"- {r}" for r in analytics.recommendations)
    return "\n".join(lines)


def format_import_results(results: ImportResults, what: str, currency: str = "USD") -> str:
    lines = [
        f"Imported {len(results.data)} {what} "
        f"totalling {format_currency(results.total_amount, currency)}.\n",
    ]
    if results.new_categories:
        lines.append(f"- **New categories:** {', '.join(sorted(results.new_categories))}")
    if results.existing_categories:
        lines.append(
            f"- **Existing categories:** {', '.join(sorted(results.existing_categories))}"
        )
    if results.warning_messages:
        lines.append(f"\n### Warnings ({len(results.warning_messages)})")
        lines.extend(f"- {w}" for w in results.warning_messages)
    return "\n".join(lines)


def format_csv_export(csv_text: str, file_name: str) -> str:
    rows = max(csv_text.count("\n") - 1, 0)
    return f"Exported {rows} rows as `{file_name}`:\n\n```csv\n{csv_text}```"


def format_category_added(
    name: str, amount: Decimal, month: int, propagated: bool, currency: str = "USD"
) -> str:
    scope = f"{_month_name(month)} onwards" if propagated else _month_name(month)
    return f"Added **{name}** at {format_currency(amount, currency)} ({scope})."


def format_category_updated(
    old_name: str,
    new_name: str,
    amount: Decimal,
    month: int,
    propagated: bool,
    currency: str = "USD",
) -> str:
    scope = f"{_month_name(month)} onwards" if propagated else _month_name(month)
    if amount == 0:
        return f"Removed **{old_name}** ({scope})."
    label = f"**{old_name}** -> **{new_name}**" if old_name != new_name else f"**{new_name}**"
    return f"Updated {label} to {format_currency(amount, currency)} ({scope})."


def format_category_deleted(name: str, month: int, propagated: bool) -> str:
    scope = f"{_month_name(month)} onwards" if propagated else _month_name(month)
    return f"Deleted **{name}** ({scope})."


def format_saved(year: int, saved_at: datetime | None) -> str:
    when = f" at {saved_at:%Y-%m-%d %H:%M}" if saved_at else ""
    return f"Saved budgets for {year}{when}."


def format_issues(issues: Mapping[str, list[str]]) -> str:
    """Render a session's field-keyed validation messages."""
    if not issues:
        return "No validation issues."
    lines = ["## Validation Issues\n"]
    for field_name, messages in issues.items():
        lines.append(f"**{field_name}**")
        lines.extend(f"- {m}" for m in messages)
    return "\n".join(lines)
