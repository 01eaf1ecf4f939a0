"""FastAPI backend module."""

from .main import app
from .schemas import OverallChurnMetrics, SegmentChurn, ChurnReason, ReportBundle

__all__ = ["app", "OverallChurnMetrics", "SegmentChurn", "ChurnReason", "ReportBundle"]
