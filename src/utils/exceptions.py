"""Custom exceptions raised while building churn reports."""

from typing import Optional


class DataQualityError(ValueError):
    """Raised when a source table is missing, incomplete or malformed."""

    def __init__(self, message: str, table: Optional[str] = None, column: Optional[str] = None):
        super().__init__(message)
        self.table = table
        self.column = column


class UnknownReportError(LookupError):
    """Raised when a report name is not one the calculator produces."""
