"""Domain errors raised by the report engine."""

from enum import Enum
from typing import Any


class ErrorType(str, Enum):
    """Categories of report engine failures."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    DATA_ACCESS = "data_access"
    NOTIFICATION = "notification"
    GENERAL = "general"


class ReportError(Exception):
    """Base error carrying the failing operation's context."""

    error_type: ErrorType = ErrorType.GENERAL

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}

    def __str__(self) -> str:
        message = super().__str__()
        if not self.context:
            return message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{message} ({details})"


class ValidationError(ReportError):
    """Bad period, path or amount input."""

    error_type = ErrorType.VALIDATION


class DataAccessError(ReportError):
    """The document store failed or could not complete a write."""

    error_type = ErrorType.DATA_ACCESS


class DocumentNotFoundError(DataAccessError):
    """A merge update targeted a path with no document."""

    error_type = ErrorType.NOT_FOUND


class VersionConflictError(DataAccessError):
    """A compare-and-set write lost against a concurrent writer."""

    def __init__(self, path: str, expected_version: int, actual_version: int | None = None):
        super().__init__(
            "Document version changed concurrently",
            {"path": path, "expected_version": expected_version, "actual_version": actual_version},
        )
        self.path = path
        self.expected_version = expected_version
        self.actual_version = actual_version


class NotificationError(ReportError):
    """The notification channel raised while sending."""

    error_type = ErrorType.NOTIFICATION
