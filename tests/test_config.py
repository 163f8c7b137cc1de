"""Tests for budget_planner/config.py."""

from decimal import Decimal
from pathlib import Path

import pytest
from pydantic import ValidationError

from budget_planner.config import BudgetConfig, load_config


class TestLoadConfig:
    def test_defaults(self):
        config = load_config({})
        assert config.currency == "USD"
        assert config.max_name_length == 50
        assert config.max_amount == Decimal("999999.99")
        assert config.autosave_delay == 2.0
        assert config.data_file.name == "budgets.json"
        assert not config.use_sync

    def test_reads_environment(self):
        config = load_config({
            "BUDGET_DATA_FILE": "~/budgets/data.json",
            "BUDGET_CURRENCY": "eur",
            "BUDGET_MAX_NAME_LENGTH": "30",
            "BUDGET_AUTOSAVE_DELAY": "0.5",
            "BUDGET_LOG_LEVEL": "debug",
        })
        assert config.data_file == Path("~/budgets/data.json").expanduser()
        assert config.currency == "EUR"
        assert config.max_name_length == 30
        assert config.autosave_delay == 0.5
        assert config.log_level == "DEBUG"

    def test_empty_values_fall_back_to_defaults(self):
        assert load_config({"BUDGET_CURRENCY": ""}).currency == "USD"

    @pytest.mark.parametrize("raw, expected", [("1", True), ("Yes", True), ("false", False), ("0", False)])
    def test_case_insensitive_flag(self, raw, expected):
        config = load_config({"BUDGET_CASE_INSENSITIVE_DUPLICATES": raw})
        assert config.case_insensitive_duplicates is expected

    def test_sync_needs_url_and_token(self):
        assert not load_config({"BUDGET_SYNC_URL": "https://sync.example.com"}).use_sync
        assert load_config({
            "BUDGET_SYNC_URL": "https://sync.example.com",
            "BUDGET_SYNC_TOKEN": "t",
        }).use_sync

    @pytest.mark.parametrize(
        "key, value",
        [("BUDGET_MAX_NAME_LENGTH", "0"), ("BUDGET_AUTOSAVE_DELAY", "-1"), ("BUDGET_MAX_AMOUNT", "abc")],
    )
    def test_invalid_values_raise(self, key, value):
        with pytest.raises(ValidationError):
            load_config({key: value})


class TestValidationLimits:
    def test_limits_follow_config(self):
        limits = BudgetConfig(max_name_length=10, case_insensitive_duplicates=True).validation_limits()
        assert limits.max_name_length == 10
        assert limits.case_insensitive_duplicates
        assert limits.large_amount_threshold == Decimal("10000")
        assert limits.min_amount == Decimal("0")

    def test_min_amount_from_environment(self):
        limits = load_config({"BUDGET_MIN_AMOUNT": "1.50"}).validation_limits()
        assert limits.min_amount == Decimal("1.50")
