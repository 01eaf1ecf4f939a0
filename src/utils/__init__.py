"""Utility functions."""

from .exceptions import DataQualityError, UnknownReportError
from .helpers import setup_logging, safe_divide, round_half_up, resolve_as_of

__all__ = [
    "DataQualityError",
    "UnknownReportError",
    "setup_logging",
    "safe_divide",
    "round_half_up",
    "resolve_as_of",
]
