"""Application error taxonomy and the error-reporting collaborator.

Every failure that leaves a session operation is classified into one
:class:`AppError` kind so callers can decide how to present it.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Protocol

from budget_planner.core.csv_io import CSVExportError, CSVImportError, ImportErrorKind
from budget_planner.core.sync_client import SyncAPIError

logger = logging.getLogger(__name__)

MAX_ERROR_HISTORY = 50


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    DATA_LOAD = "data_load"
    DATA_SAVE = "data_save"
    FILE_ACCESS = "file_access"
    DATA_PARSING = "data_parsing"
    GENERIC = "generic"


_DESCRIPTIONS = {
    ErrorKind.DATA_LOAD: "Unable to load your data",
    ErrorKind.DATA_SAVE: "Unable to save your changes",
    ErrorKind.FILE_ACCESS: "Unable to access the file",
    ErrorKind.DATA_PARSING: "Unable to read the imported data",
}

_RECOVERY = {
    ErrorKind.VALIDATION: "Please correct the highlighted fields.",
    ErrorKind.DATA_LOAD: "Please try again.",
    ErrorKind.DATA_SAVE: "Your changes are kept locally. Please try saving again.",
    ErrorKind.FILE_ACCESS: "Check file permissions and try again.",
    ErrorKind.DATA_PARSING: "Make sure the file format is correct and try again.",
    ErrorKind.GENERIC: "Please try again.",
}


class AppError(Exception):
    """Base exception for budget application errors."""

    kind: ErrorKind = ErrorKind.GENERIC

    def __init__(self, message: str = "", *, detail: str | None = None):
        self.message = message
        self.detail = detail
        super().__init__(message or _DESCRIPTIONS.get(self.kind, "Something went wrong"))

    @property
    def description(self) -> str:
        if self.kind in (ErrorKind.VALIDATION, ErrorKind.GENERIC) and self.message:
            return self.message
        base = _DESCRIPTIONS.get(self.kind, "Something went wrong")
        extra = self.detail or self.message
        return f"{base}: {extra}" if extra else base

    @property
    def recovery_suggestion(self) -> str:
        return _RECOVERY[self.kind]

    @property
    def is_retryable(self) -> bool:
        return self.kind is not ErrorKind.VALIDATION

    @classmethod
    def from_exception(cls, exc: BaseException, *, saving: bool = False) -> AppError:
        """Classify any exception as an :class:`AppError`.

        *saving* decides whether a sync API failure counts as a write or a
        read failure.
        """
        if isinstance(exc, AppError):
            return exc
        if isinstance(exc, CSVImportError):
            if exc.kind is ImportErrorKind.FILE_ACCESS_ERROR:
                return FileAccessError(str(exc), detail=exc.details)
            return DataParsingError(str(exc), detail=exc.details)
        if isinstance(exc, CSVExportError):
            return FileAccessError(str(exc))
        if isinstance(exc, SyncAPIError):
            error_cls = DataSaveError if saving else DataLoadError
            return error_cls(exc.detail, detail=f"HTTP {exc.status_code}")
        if isinstance(exc, OSError):
            return FileAccessError(str(exc))
        return AppError(f"{type(exc).__name__}: {exc}")


class BudgetValidationError(AppError):
    """User-correctable input problem.

    *field* names the input the problem belongs to; *issues* carries every
    message when several rules failed at once.
    """
    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        issues: list[str] | None = None,
    ):
        self.field = field
        self.issues = issues or [message]
        super().__init__(message)


class CategoryNotFoundError(BudgetValidationError):
    """Raised when a category is missing from a month's budget."""

    def __init__(self, name: str, month: int):
        self.name = name
        self.month = month
        super().__init__(f"Category '{name}' does not exist in month {month}")


class DataLoadError(AppError):
    kind = ErrorKind.DATA_LOAD


class DataSaveError(AppError):
    kind = ErrorKind.DATA_SAVE


class FileAccessError(AppError):
    kind = ErrorKind.FILE_ACCESS


class DataParsingError(AppError):
    kind = ErrorKind.DATA_PARSING


# --- Error reporting ---


class ErrorReporter(Protocol):
    """Receives session-level failures. Fire-and-forget."""

    def handle(self, error: AppError, context: str) -> None:  # pragma: no cover - interface
        ...


class LoggingErrorReporter:
    """Logs reported errors and keeps a bounded, newest-first history."""

    def __init__(self, max_history: int = MAX_ERROR_HISTORY):
        self._max_history = max_history
        self.history: list[tuple[AppError, str]] = []

    def handle(self, error: AppError, context: str) -> None:
        logger.error("%s (%s)", error.description, context)
        self.history.insert(0, (error, context))
        del self.history[self._max_history:]

    @property
    def latest(self) -> AppError | None:
        return self.history[0][0] if self.history else None

    def clear(self) -> None:
        self.history.clear()
