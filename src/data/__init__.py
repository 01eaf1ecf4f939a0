"""Data module for loading and preparing the churn source tables."""

from .data_loader import DataLoader
from .preprocessor import DataPreprocessor
from .schema import (
    ACCOUNTS,
    CHURN_EVENTS,
    FEATURE_USAGE,
    SUBSCRIPTIONS,
    SUPPORT_TICKETS,
    TABLE_NAMES,
)

__all__ = [
    "DataLoader",
    "DataPreprocessor",
    "ACCOUNTS",
    "CHURN_EVENTS",
    "FEATURE_USAGE",
    "SUBSCRIPTIONS",
    "SUPPORT_TICKETS",
    "TABLE_NAMES",
]
