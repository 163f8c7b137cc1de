"""Runtime configuration read from environment variables (and ``.env``)."""

from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from budget_planner.models.schemas import ValidationLimits

_TRUE = {"1", "true", "yes", "on"}


class BudgetConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    data_file: Path = Field(default=Path.home() / ".budget-planner" / "budgets.json")
    sync_url: Optional[str] = None
    sync_token: Optional[str] = None
    currency: str = Field(default="USD", min_length=3, max_length=3)
    max_name_length: int = Field(default=50, ge=1, le=200)
    max_amount: Decimal = Field(default=Decimal("999999.99"), gt=0)
    min_amount: Decimal = Field(default=Decimal("0"), ge=0)
    large_amount_threshold: Decimal = Field(default=Decimal("10000"), gt=0)
    case_insensitive_duplicates: bool = False
    autosave_delay: float = Field(default=2.0, ge=0)
    log_level: str = "INFO"

    @field_validator("currency", "log_level")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.upper()

    @property
    def use_sync(self) -> bool:
        return bool(self.sync_url and self.sync_token)

    def validation_limits(self) -> ValidationLimits:
        return ValidationLimits(
            max_name_length=self.max_name_length,
            max_amount=self.max_amount,
            min_amount=self.min_amount,
            large_amount_threshold=self.large_amount_threshold,
            case_insensitive_duplicates=self.case_insensitive_duplicates,
        )


_ENV_FIELDS = {
    "BUDGET_DATA_FILE": "data_file",
    "BUDGET_SYNC_URL": "sync_url",
    "BUDGET_SYNC_TOKEN": "sync_token",
    "BUDGET_CURRENCY": "currency",
    "BUDGET_MAX_NAME_LENGTH": "max_name_length",
    "BUDGET_MAX_AMOUNT": "max_amount",
    "BUDGET_MIN_AMOUNT": "min_amount",
    "BUDGET_LARGE_AMOUNT_THRESHOLD": "large_amount_threshold",
    "BUDGET_AUTOSAVE_DELAY": "autosave_delay",
    "BUDGET_LOG_LEVEL": "log_level",
}


def load_config(environ: Mapping[str, str] | None = None) -> BudgetConfig:
    """Build a :class:`BudgetConfig` from ``BUDGET_*`` environment variables.

    Unset or empty variables fall back to the model defaults. Raises
    ``pydantic.ValidationError`` for out-of-range values.
    """
    env = os.environ if environ is None else environ
    values: dict[str, object] = {
        field: env[key] for key, field in _ENV_FIELDS.items() if env.get(key)
    }
    if "data_file" in values:
        values["data_file"] = Path(str(values["data_file"])).expanduser()
    flag = env.get("BUDGET_CASE_INSENSITIVE_DUPLICATES")
    if flag:
        values["case_insensitive_duplicates"] = flag.strip().lower() in _TRUE
    return BudgetConfig(**values)
