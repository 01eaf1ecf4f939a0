"""Churn report aggregation."""

from .calculator import ChurnMetricsCalculator

__all__ = ["ChurnMetricsCalculator"]
