"""Tests for budget_planner/core/csv_io.py."""

from datetime import date
from decimal import Decimal

import pytest

from tests.conftest import make_budget, make_entry
from budget_planner.core.csv_io import (
    MAX_ROW_COUNT,
    CSVExportError,
    CSVImportError,
    ImportErrorKind,
    export_budgets_csv,
    export_entries_csv,
    export_file_name,
    filter_entries,
    parse_budgets_csv,
    parse_purchases_csv,
    read_csv_file,
    write_export_file,
)
from budget_planner.models.schemas import DateRange, TimePeriod

TODAY = date(2024, 6, 15)


class TestExportEntries:
    def test_header_and_rows(self):
        text = export_entries_csv([make_entry(note="weekly shop")])
        assert text == "Date,Amount,Category,Note\n2024-06-15,42.50,Groceries,weekly shop\n"

    def test_commas_become_semicolons(self):
        text = export_entries_csv([make_entry(category="Food, Drink", note="a,b")])
        assert "Food; Drink" in text
        assert "a;b" in text
        assert '"' not in text

    def test_missing_note_is_blank(self):
        text = export_entries_csv([make_entry()])
        assert text.splitlines()[1].endswith("Groceries,")

    def test_period_filter(self):
        entries = [make_entry(day=date(2024, 6, 1)), make_entry(day=date(2024, 5, 31))]
        text = export_entries_csv(entries, TimePeriod.THIS_MONTH, TODAY)
        assert "2024-06-01" in text
        assert "2024-05-31" not in text

    def test_nothing_to_export(self):
        with pytest.raises(CSVExportError, match="No entries"):
            export_entries_csv([make_entry(day=date(2020, 1, 1))], TimePeriod.TODAY, TODAY)

    def test_round_trip(self):
        entries = [
            make_entry(day=date(2024, 6, 1), amount="10.00", category="Food"),
            make_entry(day=date(2024, 6, 2), amount="3.5", category="Fun, Games", note="x"),
        ]
        parsed = parse_purchases_csv(export_entries_csv(entries)).data
        assert [(e.date, e.amount, e.note) for e in parsed] == [
            (date(2024, 6, 1), Decimal("10.00"), None),
            (date(2024, 6, 2), Decimal("3.50"), "x"),
        ]
        assert parsed[1].category == "Fun; Games"


class TestFilterEntries:
    def test_custom_range_is_inclusive(self):
        entries = [make_entry(day=date(2024, 6, d)) for d in (1, 10, 20)]
        kept = filter_entries(entries, DateRange(start=date(2024, 6, 1), end=date(2024, 6, 10)))
        assert [e.date.day for e in kept] == [1, 10]


class TestExportBudgets:
    def test_sorted_rows(self):
        text = export_budgets_csv([
            make_budget("Rent", "1200", month=2),
            make_budget("Food", "300", month=1, is_historical=True),
        ])
        assert text.splitlines() == [
            "Year,Month,Category,Amount,IsHistorical",
            "2024,1,Food,300.00,true",
            "2024,2,Rent,1200.00,false",
        ]

    def test_nothing_to_export(self):
        with pytest.raises(CSVExportError, match="No budgets"):
            export_budgets_csv([])


class TestExportFiles:
    def test_file_name_for_period(self):
        assert export_file_name(TimePeriod.THIS_MONTH, TODAY) == "budget_export_this_month_2024-06-15.csv"

    def test_file_name_for_custom_range(self):
        name = export_file_name(DateRange(start=date(2024, 1, 1), end=date(2024, 3, 31)), TODAY)
        assert name == "budget_export_2024-01-01_to_2024-03-31_2024-06-15.csv"

    def test_write_creates_parents(self, tmp_path):
        path = write_export_file("a,b\n", tmp_path / "out" / "x.csv")
        assert path.read_text() == "a,b\n"

    def test_write_failure(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        with pytest.raises(CSVExportError):
            write_export_file("a\n", blocker / "x.csv")


class TestParsePurchases:
    def test_parses_rows_and_classifies_categories(self):
        text = "Date,Amount,Category,Note\n2024-06-01,12.5,Food,lunch\n2024-06-02,30,Gym,\n"
        results = parse_purchases_csv(text, existing_categories=["Food"])
        assert len(results.data) == 2
        assert results.categories == {"Food", "Gym"}
        assert results.existing_categories == {"Food"}
        assert results.new_categories == {"Gym"}
        assert results.total_amount == Decimal("42.50")
        assert results.data[1].note is None

    def test_headers_are_case_insensitive_and_note_optional(self):
        results = parse_purchases_csv("date,AMOUNT,category\n2024-06-01,1,Food\n")
        assert results.data[0].category == "Food"

    def test_bad_rows_become_warnings(self):
        text = (
            "Date,Amount,Category\n"
            "2024-06-01,10,Food\n"
            "06/02/2024,10,Food\n"
            "2024-06-03,-5,Food\n"
            "2024-06-04,10,\n"
            "2024-06-05,ten,Food\n"
        )
        results = parse_purchases_csv(text)
        assert len(results.data) == 1
        assert results.warning_messages == [
            "Row 3: Invalid date format: expected yyyy-MM-dd, got: 06/02/2024",
            "Row 4: Invalid amount: -5",
            "Row 5: Category field is empty",
            "Row 6: Invalid amount: ten",
        ]

    def test_blank_lines_are_skipped(self):
        results = parse_purchases_csv("Date,Amount,Category\n\n2024-06-01,10,Food\n\n")
        assert len(results.data) == 1

    def test_warnings_use_file_line_numbers_around_blank_lines(self):
        text = (
            "Date,Amount,Category\n"
            "\n"
            "2024-06-01,10,Food\n"
            "\n"
            "\n"
            "2024-06-02,ten,Food\n"
            '2024-06-03,10,"Food\nand drink"\n'
            "2024-06-04,,Food\n"
        )
        results = parse_purchases_csv(text)
        assert len(results.data) == 2
        assert results.warning_messages == [
            "Row 6: Invalid amount: ten",
            "Row 9: Invalid amount: empty",
        ]

    def test_empty_file(self):
        with pytest.raises(CSVImportError) as exc:
            parse_purchases_csv("  \n")
        assert exc.value.kind is ImportErrorKind.INVALID_FILE_FORMAT

    def test_missing_required_column(self):
        with pytest.raises(CSVImportError, match="Missing required fields: category"):
            parse_purchases_csv("Date,Amount\n2024-06-01,10\n")

    def test_duplicate_headers(self):
        with pytest.raises(CSVImportError, match="Duplicate column headers"):
            parse_purchases_csv("Date,Amount,Category,date\n")

    def test_no_valid_rows(self):
        with pytest.raises(CSVImportError) as exc:
            parse_purchases_csv("Date,Amount,Category\nbad,1,Food\n")
        assert exc.value.kind is ImportErrorKind.DATA_PARSING_ERROR

    def test_too_many_rows(self):
        text = "Date,Amount,Category\n" + "2024-06-01,1,Food\n" * MAX_ROW_COUNT
        with pytest.raises(CSVImportError, match="too many rows"):
            parse_purchases_csv(text)


class TestParseBudgets:
    def test_parses_rows(self):
        text = "Year,Month,Category,Amount,IsHistorical\n2024,6,Rent,1200,true\n2024,7,Rent,1200,\n"
        results = parse_budgets_csv(text)
        assert [(b.month, b.is_historical) for b in results.data] == [(6, True), (7, False)]
        assert results.total_amount == Decimal("2400.00")

    def test_invalid_month_is_a_warning(self):
        text = "Year,Month,Category,Amount\n2024,13,Rent,1\n2024,1,Rent,1\n"
        results = parse_budgets_csv(text)
        assert results.warning_messages == ["Row 2: Invalid month: 13"]


class TestReadFile:
    def test_reads_text(self, tmp_path):
        path = tmp_path / "in.csv"
        path.write_text("Date,Amount,Category\n", encoding="utf-8")
        assert read_csv_file(path).startswith("Date")

    def test_size_limit(self, tmp_path):
        path = tmp_path / "in.csv"
        path.write_text("x" * 20)
        with pytest.raises(CSVImportError, match="File size exceeds"):
            read_csv_file(path, max_size=10)

    def test_missing_file(self, tmp_path):
        with pytest.raises(CSVImportError) as exc:
            read_csv_file(tmp_path / "nope.csv")
        assert exc.value.kind is ImportErrorKind.FILE_ACCESS_ERROR

    def test_non_utf8(self, tmp_path):
        path = tmp_path / "in.csv"
        path.write_bytes(b"\xff\xfe\x00bad")
        with pytest.raises(CSVImportError) as exc:
            read_csv_file(path)
        assert exc.value.kind is ImportErrorKind.FILE_ACCESS_ERROR
