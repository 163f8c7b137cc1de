"""Budget Planner MCP Server.

Exposes a monthly category budget editor as MCP tools: category editing
with validation, analytics, persistence and CSV import/export.
"""

import logging
import sys
from contextlib import asynccontextmanager
from datetime import date
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from mcp.server.fastmcp import Context, FastMCP

# Ensure project root is on sys.path so `budget_planner` is importable when
# loaded directly by tools like `mcp dev` (which use importlib, not `python -m`).
_project_root = str(Path(__file__).resolve().parent.parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

load_dotenv()

from budget_planner.config import BudgetConfig, load_config
from budget_planner.core.csv_io import export_file_name
from budget_planner.core.errors import LoggingErrorReporter
from budget_planner.core.repository import JSONFileBudgetRepository
from budget_planner.core.session import NEW_CATEGORY_FIELD, BudgetSession
from budget_planner.core.sync_client import BudgetSyncClient
from budget_planner.core.validation import validate_category
from budget_planner.mcp.error_handling import handle_tool_errors
from budget_planner.mcp.formatters import (
    format_analytics,
    format_category_added,
    format_category_deleted,
    format_category_updated,
    format_csv_export,
    format_import_results,
    format_issues,
    format_month,
    format_saved,
    format_summary,
    format_validation,
)
from budget_planner.models.schemas import (
    AddCategoryInput,
    AnalyticsInput,
    ChangeYearInput,
    CSVTextInput,
    DeleteCategoryInput,
    ExportPurchasesInput,
    GetMonthInput,
    UpdateCategoryInput,
    ValidateCategoryInput,
)

logger = logging.getLogger("budget_mcp")


# --- Lifespan: initialize shared resources ---


@asynccontextmanager
async def app_lifespan(server: FastMCP):
    config = load_config()
    # stdout carries the MCP stdio transport
    logging.basicConfig(
        stream=sys.stderr,
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    client: Optional[BudgetSyncClient] = None
    if config.use_sync:
        client = BudgetSyncClient(base_url=config.sync_url, api_token=config.sync_token)
        repository = client
        logger.info("Using budget sync API at %s", config.sync_url)
    else:
        repository = JSONFileBudgetRepository(config.data_file)
        logger.info("Using budget file %s", config.data_file)

    session = BudgetSession(repository, LoggingErrorReporter(), config)
    await session.load()

    try:
        yield {"session": session, "config": config}
    finally:
        await session.close(flush=True)
        if client is not None:
            await client.close()


mcp = FastMCP("budget_mcp", lifespan=app_lifespan)


# --- Helpers ---


def _get_deps(ctx) -> tuple[BudgetSession, BudgetConfig]:
    state = ctx.request_context.lifespan_context
    return state["session"], state["config"]


def _failure(session: BudgetSession, field: Optional[str] = None) -> str:
    """Explain why the last session operation did not succeed."""
    error = session.view_state.error
    if session.has_error and error is not None:
        return f"{error.description}. {error.recovery_suggestion}"
    if field is not None and field in session.validation_errors:
        return format_issues({field: session.validation_errors[field]})
    return format_issues(session.validation_errors)


# --- Read-Only Tools ---


@mcp.tool(
    name="budget_get_summary",
    annotations={
        "title": "Budget Summary",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
@handle_tool_errors
async def budget_get_summary(ctx: Context) -> str:
    """Headline totals for the selected month and year."""
    session, config = _get_deps(ctx)
    return format_summary(
        session.summary,
        session.selected_year,
        session.selected_month,
        config.currency,
        has_unsaved_changes=session.has_unsaved_changes,
        last_save_date=session.last_save_date,
    )


@mcp.tool(
    name="budget_get_month",
    annotations={
        "title": "Month Categories",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
@handle_tool_errors
async def budget_get_month(params: GetMonthInput, ctx: Context) -> str:
    """List every category and amount budgeted for a month."""
    session, config = _get_deps(ctx)
    month = params.month or session.selected_month
    return format_month(
        session.store.budget_for_month(month), session.selected_year, month, config.currency
    )


@mcp.tool(
    name="budget_validate_category",
    annotations={
        "title": "Validate Category",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
@handle_tool_errors
async def budget_validate_category(params: ValidateCategoryInput, ctx: Context) -> str:
    """Check a proposed category name and amount without adding it."""
    session, _ = _get_deps(ctx)
    result = session.validate_new_category(params.name, params.amount)
    return format_validation(params.name, result)


@mcp.tool(
    name="budget_get_analytics",
    annotations={
        "title": "Budget Analytics",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
@handle_tool_errors
async def budget_get_analytics(params: AnalyticsInput, ctx: Context) -> str:
    """Trend, variance, category distribution and recommendations for the year."""
    session, config = _get_deps(ctx)
    if params.spent is not None:
        session.set_spent(params.spent)
    return format_analytics(session.analytics, config.currency)


@mcp.tool(
    name="budget_export_budgets_csv",
    annotations={
        "title": "Export Budgets to CSV",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
@handle_tool_errors
async def budget_export_budgets_csv(ctx: Context) -> str:
    """Export the selected year's monthly budgets as CSV text."""
    session, _ = _get_deps(ctx)
    csv_text = await session.export_budgets_csv()
    if csv_text is None:
        return _failure(session)
    return format_csv_export(csv_text, f"budgets_{session.selected_year}.csv")


@mcp.tool(
    name="budget_export_purchases_csv",
    annotations={
        "title": "Export Purchases to CSV",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
@handle_tool_errors
async def budget_export_purchases_csv(params: ExportPurchasesInput, ctx: Context) -> str:
    """Export purchases inside a time period (or custom range) as CSV text."""
    session, _ = _get_deps(ctx)
    today = date.today()
    period = params.date_range(today) if params.start is not None else params.period
    csv_text = await session.export_purchases_csv(params.entries, period, today)
    if csv_text is None:
        return _failure(session)
    return format_csv_export(csv_text, export_file_name(period, today))


# --- Write Tools ---


@mcp.tool(
    name="budget_add_category",
    annotations={
        "title": "Add Budget Category",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": False,
        "openWorldHint": False,
    },
)
@handle_tool_errors
async def budget_add_category(params: AddCategoryInput, ctx: Context) -> str:
    """Add a category to a month, optionally to every later month too."""
    session, config = _get_deps(ctx)
    month = params.month or session.selected_month
    ok = await session.add_category(
        params.name, params.amount, params.propagate_to_future_months, month
    )
    if not ok:
        return _failure(session, NEW_CATEGORY_FIELD)

    lines = [
        format_category_added(
            params.name, params.amount, month, params.propagate_to_future_months,
            config.currency,
        )
    ]
    # Warnings don't block the add but are worth surfacing.
    warnings = validate_category(params.name, params.amount, limits=session.limits).warnings
    lines.extend(f"- {w}" for w in warnings)
    return "\n".join(lines)


@mcp.tool(
    name="budget_update_category",
    annotations={
        "title": "Update Budget Category",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
@handle_tool_errors
async def budget_update_category(params: UpdateCategoryInput, ctx: Context) -> str:
    """Rename a category and/or change its amount. An amount of 0 removes it."""
    session, config = _get_deps(ctx)
    month = params.month or session.selected_month
    new_name = params.new_name or params.old_name
    ok = await session.update_category(
        params.old_name, new_name, params.amount, params.propagate_to_future_months, month
    )
    if not ok:
        return _failure(session, params.old_name)
    return format_category_updated(
        params.old_name, new_name, params.amount, month,
        params.propagate_to_future_months, config.currency,
    )


@mcp.tool(
    name="budget_delete_category",
    annotations={
        "title": "Delete Budget Category",
        "readOnlyHint": False,
        "destructiveHint": True,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
@handle_tool_errors
async def budget_delete_category(params: DeleteCategoryInput, ctx: Context) -> str:
    """Remove a category from a month, optionally from every later month too."""
    session, _ = _get_deps(ctx)
    month = params.from_month or session.selected_month
    ok = await session.delete_category(params.name, month, params.propagate_to_future_months)
    if not ok:
        return _failure(session, params.name)
    return format_category_deleted(params.name, month, params.propagate_to_future_months)


@mcp.tool(
    name="budget_save",
    annotations={
        "title": "Save Budgets",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
@handle_tool_errors
async def budget_save(ctx: Context) -> str:
    """Persist every pending change for the selected year."""
    session, _ = _get_deps(ctx)
    if not session.has_unsaved_changes:
        return "No unsaved changes."
    if not await session.save():
        return _failure(session, "budgets")
    return format_saved(session.selected_year, session.last_save_date)


@mcp.tool(
    name="budget_change_year",
    annotations={
        "title": "Change Budget Year",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
@handle_tool_errors
async def budget_change_year(params: ChangeYearInput, ctx: Context) -> str:
    """Switch to another year, optionally seeding it from an existing year."""
    session, config = _get_deps(ctx)
    if session.has_unsaved_changes and not await session.save():
        return _failure(session, "budgets")
    if not await session.change_year(params.year):
        return _failure(session)
    if params.copy_from_year is not None:
        if not await session.copy_year_into_selected(params.copy_from_year):
            return _failure(session)
    return format_summary(
        session.summary,
        session.selected_year,
        session.selected_month,
        config.currency,
        has_unsaved_changes=session.has_unsaved_changes,
        last_save_date=session.last_save_date,
    )


@mcp.tool(
    name="budget_import_budgets_csv",
    annotations={
        "title": "Import Budgets from CSV",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
@handle_tool_errors
async def budget_import_budgets_csv(params: CSVTextInput, ctx: Context) -> str:
    """Merge Year,Month,Category,Amount rows into the selected year."""
    session, config = _get_deps(ctx)
    results = await session.import_budgets_csv(params.csv_text)
    if results is None:
        return _failure(session)
    return format_import_results(results, "budget rows", config.currency)


# --- Entry point ---

if __name__ == "__main__":
    mcp.run()
