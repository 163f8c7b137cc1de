"""CSV export and import for purchases and monthly budgets.

Export replaces commas inside text fields with semicolons instead of quoting
them, so exported files stay readable by naive line/comma splitters. Import
is tolerant per row: bad rows become warnings and only a file with no usable
rows fails outright.
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import Iterable

from budget_planner.models.results import ImportResults
from budget_planner.models.schemas import (
    BudgetEntry,
    DateRange,
    MonthlyBudget,
    TimePeriod,
    to_amount,
)

logger = logging.getLogger(__name__)

PURCHASE_HEADER = ["Date", "Amount", "Category", "Note"]
BUDGET_HEADER = ["Year", "Month", "Category", "Amount", "IsHistorical"]
DATE_FORMAT = "%Y-%m-%d"

MAX_FILE_SIZE = 10 * 1024 * 1024
MAX_ROW_COUNT = 10_000


class ImportErrorKind(str, Enum):
    INVALID_FILE_FORMAT = "invalid_file_format"
    DATA_PARSING_ERROR = "data_parsing_error"
    FILE_ACCESS_ERROR = "file_access_error"


class CSVImportError(Exception):
    """Raised when a CSV file cannot be imported."""

    def __init__(self, kind: ImportErrorKind, details: str = ""):
        self.kind = kind
        self.details = details
        message = {
            ImportErrorKind.INVALID_FILE_FORMAT: "Invalid CSV format",
            ImportErrorKind.DATA_PARSING_ERROR: "Failed to parse CSV",
            ImportErrorKind.FILE_ACCESS_ERROR: "Failed to read file",
        }[kind]
        super().__init__(f"{message}: {details}" if details else message)


class CSVExportError(Exception):
    """Raised when there is nothing to export or the file cannot be written."""


class _RowError(ValueError):
    pass


# --- Export ---


def _sanitize(text: str | None) -> str:
    return (text or "").replace(",", ";")


def filter_entries(
    entries: Iterable[BudgetEntry],
    period: TimePeriod | DateRange,
    today: date | None = None,
) -> list[BudgetEntry]:
    """Keep entries whose date falls inside *period* (inclusive)."""
    bounds = period if isinstance(period, DateRange) else period.date_range(today)
    return [e for e in entries if bounds.contains(e.date)]


def export_entries_csv(
    entries: Iterable[BudgetEntry],
    period: TimePeriod | DateRange | None = None,
    today: date | None = None,
) -> str:
    """Render purchases as ``Date,Amount,Category,Note`` CSV text.

    Raises :class:`CSVExportError` when no entries remain after filtering.
    """
    selected = list(entries) if period is None else filter_entries(entries, period, today)
    if not selected:
        raise CSVExportError("No entries to export")

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(PURCHASE_HEADER)
    for entry in selected:
        writer.writerow([
            entry.date.strftime(DATE_FORMAT),
            f"{to_amount(entry.amount):.2f}",
            _sanitize(entry.category),
            _sanitize(entry.note),
        ])
    return buffer.getvalue()


def export_budgets_csv(budgets: Iterable[MonthlyBudget]) -> str:
    """Render monthly budgets as ``Year,Month,Category,Amount,IsHistorical`` CSV text."""
    rows = list(budgets)
    if not rows:
        raise CSVExportError("No budgets to export")

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(BUDGET_HEADER)
    for b in sorted(rows, key=lambda r: (r.year, r.month, r.category)):
        writer.writerow([
            b.year,
            b.month,
            _sanitize(b.category),
            f"{to_amount(b.amount):.2f}",
            "true" if b.is_historical else "false",
        ])
    return buffer.getvalue()


def export_file_name(period: TimePeriod | DateRange, today: date | None = None) -> str:
    """Build a file name like ``budget_export_this_month_2024-06-01.csv``."""
    today = today or date.today()
    if isinstance(period, DateRange):
        label = f"{period.start.isoformat()}_to_{period.end.isoformat()}"
    else:
        label = period.value
    return f"budget_export_{label}_{today.strftime(DATE_FORMAT)}.csv"


def write_export_file(content: str, output_path: Path) -> Path:
    """Write CSV *content* to *output_path*, creating parent directories."""
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        # Use newline='' for csv on Windows
        with output_path.open("w", newline="", encoding="utf-8") as fh:
            fh.write(content)
    except OSError as e:
        raise CSVExportError(f"Failed to write export file: {e}") from e
    logger.info("Wrote CSV export to %s", output_path)
    return output_path


# --- Import ---


def read_csv_file(path: Path, max_size: int = MAX_FILE_SIZE) -> str:
    """Read a CSV file as UTF-8 text, enforcing the size limit."""
    try:
        if path.stat().st_size > max_size:
            raise CSVImportError(
                ImportErrorKind.INVALID_FILE_FORMAT, "File size exceeds maximum allowed limit"
            )
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise CSVImportError(
            ImportErrorKind.FILE_ACCESS_ERROR, "Unable to read file as UTF-8 text"
        ) from e
    except OSError as e:
        raise CSVImportError(ImportErrorKind.FILE_ACCESS_ERROR, str(e)) from e
    return content


def _read_rows(content: str, required: list[str]) -> list[tuple[int, dict[str, str]]]:
    """Split CSV text into (line number, dict keyed by lowercased header) pairs."""
    if not content.strip():
        raise CSVImportError(ImportErrorKind.INVALID_FILE_FORMAT, "File is empty or contains no data")

    reader = csv.reader(io.StringIO(content))
    rows: list[tuple[int, list[str]]] = []
    line = 1
    for row in reader:
        fields = [field.strip() for field in row]
        if any(fields):
            rows.append((line, fields))
        line = reader.line_num + 1
    if not rows:
        raise CSVImportError(ImportErrorKind.INVALID_FILE_FORMAT, "File is empty or contains no data")
    if len(rows) > MAX_ROW_COUNT:
        raise CSVImportError(
            ImportErrorKind.DATA_PARSING_ERROR,
            f"File contains too many rows (max: {MAX_ROW_COUNT})",
        )

    headers = [h.lower() for h in rows[0][1]]
    if len(set(headers)) != len(headers):
        raise CSVImportError(ImportErrorKind.INVALID_FILE_FORMAT, "Duplicate column headers found")
    missing = [h for h in required if h not in headers]
    if missing:
        raise CSVImportError(
            ImportErrorKind.INVALID_FILE_FORMAT,
            f"Missing required fields: {', '.join(missing)}",
        )

    records = []
    for line, fields in rows[1:]:
        padded = fields[: len(headers)] + [""] * max(0, len(headers) - len(fields))
        records.append((line, dict(zip(headers, padded))))
    return records


def _parse_amount(raw: str) -> Decimal:
    try:
        amount = Decimal(raw)
    except InvalidOperation:
        raise _RowError(f"Invalid amount: {raw or 'empty'}") from None
    if not amount.is_finite() or amount < 0:
        raise _RowError(f"Invalid amount: {raw}")
    return to_amount(amount)


def _parse_category(raw: str) -> str:
    if not raw:
        raise _RowError("Category field is empty")
    return raw


def _parse_purchase(row: dict[str, str]) -> BudgetEntry:
    raw_date = row.get("date", "")
    if not raw_date:
        raise _RowError("Invalid date format: Date field is empty")
    try:
        day = datetime.strptime(raw_date, DATE_FORMAT).date()
    except ValueError:
        raise _RowError(f"Invalid date format: expected yyyy-MM-dd, got: {raw_date}") from None

    return BudgetEntry(
        date=day,
        amount=_parse_amount(row.get("amount", "")),
        category=_parse_category(row.get("category", "")),
        note=row.get("note") or None,
    )


def _parse_int(raw: str, label: str, low: int, high: int) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise _RowError(f"Invalid {label}: {raw or 'empty'}") from None
    if not low <= value <= high:
        raise _RowError(f"Invalid {label}: {raw}")
    return value


def _parse_budget(row: dict[str, str]) -> MonthlyBudget:
    return MonthlyBudget(
        year=_parse_int(row.get("year", ""), "year", 1900, 9999),
        month=_parse_int(row.get("month", ""), "month", 1, 12),
        category=_parse_category(row.get("category", "")),
        amount=_parse_amount(row.get("amount", "")),
        is_historical=row.get("ishistorical", "").lower() == "true",
    )


def _collect(records, parse, existing_categories, what: str) -> ImportResults:
    data = []
    warnings: list[str] = []
    for line, row in records:
        try:
            item = parse(row)
        except _RowError as e:
            warnings.append(f"Row {line}: {e}")
            continue
        data.append(item)

    if not data:
        raise CSVImportError(ImportErrorKind.DATA_PARSING_ERROR, f"No valid {what} data found")

    categories = {item.category for item in data}
    existing = set(existing_categories)
    return ImportResults(
        data=data,
        categories=categories,
        existing_categories=existing & categories,
        new_categories=categories - existing,
        total_amount=sum((item.amount for item in data), Decimal("0")),
        warning_messages=warnings,
    )


def parse_purchases_csv(
    content: str,
    existing_categories: Iterable[str] = (),
) -> ImportResults[BudgetEntry]:
    """Parse ``Date,Amount,Category[,Note]`` CSV text into purchase entries."""
    records = _read_rows(content, required=["date", "amount", "category"])
    return _collect(records, _parse_purchase, existing_categories, "purchase")


def parse_budgets_csv(
    content: str,
    existing_categories: Iterable[str] = (),
) -> ImportResults[MonthlyBudget]:
    """Parse ``Year,Month,Category,Amount[,IsHistorical]`` CSV text into monthly budgets."""
    records = _read_rows(content, required=["year", "month", "category", "amount"])
    return _collect(records, _parse_budget, existing_categories, "budget")
