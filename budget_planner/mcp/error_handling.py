"""Consistent error handling for MCP tool functions."""

from __future__ import annotations

import functools
import logging
from typing import Callable

import httpx
from pydantic import ValidationError

from budget_planner.core.csv_io import CSVExportError, CSVImportError
from budget_planner.core.errors import AppError, BudgetValidationError
from budget_planner.core.sync_client import SyncAPIError

logger = logging.getLogger("budget_mcp")


def handle_tool_errors(fn: Callable) -> Callable:
    """Decorator that catches known exceptions and returns user-friendly error strings.

    MCP tools must return ``str``, not raise.  This ensures all tools
    follow that contract without duplicating try/except blocks.
    """

    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except BudgetValidationError as e:
            return f"Invalid input: {e.description}"
        except AppError as e:
            return f"{e.description}. {e.recovery_suggestion}"
        except SyncAPIError as e:
            return f"Budget sync API error: {e.detail}"
        except CSVImportError as e:
            return f"Import failed: {e}"
        except CSVExportError as e:
            return f"Export failed: {e}"
        except httpx.ConnectError:
            return "Cannot connect to the budget sync API. Check your network connection."
        except httpx.TimeoutException:
            return "Request to the budget sync API timed out. Please try again."
        except ValidationError as e:
            return f"Invalid data: {e.error_count()} validation error(s). Check your input."
        except Exception as e:
            logger.exception("Unexpected error in tool %s", fn.__name__)
            return f"Unexpected error: {type(e).__name__}: {e}"

    return wrapper
