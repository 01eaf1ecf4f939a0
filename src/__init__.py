"""
Churn Diagnostics System
========================

Churn analytics over SaaS subscription and usage records: overall and
segment churn, churn reasons, feature adoption and early engagement.

Modules:
    - data: Source table loading and preparation
    - features: Per-account feature derivation
    - metrics: Report aggregation
    - api: FastAPI backend
    - utils: Utility functions
"""

__version__ = "1.0.0"
