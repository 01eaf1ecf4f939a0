"""
Shared fixtures: a small SaaS dataset with known report values.

Five accounts measured as of 2024-12-31:

    A1  Tech/Pro      signup 2024-01-01  churned 2024-03-01  (60 days)
    A2  Tech/Pro      signup 2024-01-01  active              (365 days)
    A3  Tech/Basic    signup 2024-06-01  churned 2024-06-01  (0 days)
    A4  Retail/Basic  signup 2024-02-01  churned 2024-05-01  (90 days)
    A5  Retail/Basic  signup 2024-07-01  active              (183 days)
"""

import sys
from pathlib import Path

import pandas as pd
import pytest

repo_root = Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

AS_OF = "2024-12-31"


@pytest.fixture
def test_config():
    return {
        "data": {
            "source": "files",
            "files": {
                "accounts": "saas_accounts.csv",
                "subscriptions": "saas_subscriptions.csv",
                "churn_events": "churn_events.csv",
                "feature_usage": "feature_usage.csv",
                "support_tickets": "support_tickets.csv",
            },
        },
        "analysis": {
            "as_of_date": AS_OF,
            "engagement_window_days": 30,
            "churn_event_policy": "latest",
        },
        "reports": {"format": "csv"},
    }


@pytest.fixture
def source_tables():
    accounts = pd.DataFrame({
        "account_id": ["A1", "A2", "A3", "A4", "A5"],
        "industry": ["Tech", "Tech", "Tech", "Retail", "Retail"],
        "plan_tier": ["Pro", "Pro", "Basic", "Basic", "Basic"],
        "signup_date": ["2024-01-01", "2024-01-01", "2024-06-01", "2024-02-01", "2024-07-01"],
    })
    subscriptions = pd.DataFrame({
        "subscription_id": ["S1", "S2", "S3", "S4", "S5", "S6"],
        "account_id": ["A1", "A2", "A3", "A4", "A5", "A2"],
        "mrr_amount": [100.0, 200.0, 50.0, 300.0, None, 25.0],
    })
    churn_events = pd.DataFrame({
        "account_id": ["A1", "A3", "A4"],
        "churn_date": ["2024-03-01", "2024-06-01", "2024-05-01"],
        "reason_code": ["pricing", "pricing", "support"],
        "refund_amount_usd": [50.0, None, 100.0],
    })
    # No account_id column: it is resolved through subscriptions
    feature_usage = pd.DataFrame({
        "subscription_id": ["S1", "S1", "S1", "S2", "S2", "S2", "S6", "S4"],
        "feature_name": ["reports", "export", "reports", "reports", "dashboards", "api", "alerts", "reports"],
        "usage_date": [
            "2024-01-05", "2024-01-05", "2024-02-15", "2024-01-10",
            "2024-01-20", "2024-01-31", "2024-03-01", "2024-02-03",
        ],
        "usage_count": [10, 4, 6, 20, 5, 5, 8, 2],
    })
    support_tickets = pd.DataFrame({
        "ticket_id": ["T1", "T2", "T3", "T4", "T5"],
        "account_id": ["A1", "A1", "A4", "A5", "A2"],
        "created_date": ["2024-01-10", "2024-01-15", "2024-04-01", "2024-07-02", "2023-12-25"],
    })

    return {
        "accounts": accounts,
        "subscriptions": subscriptions,
        "churn_events": churn_events,
        "feature_usage": feature_usage,
        "support_tickets": support_tickets,
    }


@pytest.fixture
def empty_tables():
    return {
        "accounts": pd.DataFrame(columns=["account_id", "industry", "plan_tier", "signup_date"]),
        "subscriptions": pd.DataFrame(columns=["subscription_id", "account_id", "mrr_amount"]),
        "churn_events": pd.DataFrame(columns=["account_id", "churn_date", "reason_code", "refund_amount_usd"]),
        "feature_usage": pd.DataFrame(columns=["subscription_id", "feature_name", "usage_date", "usage_count"]),
        "support_tickets": pd.DataFrame(columns=["ticket_id", "account_id", "created_date"]),
    }


@pytest.fixture
def calculator(source_tables, test_config):
    from src.metrics import ChurnMetricsCalculator

    return ChurnMetricsCalculator(source_tables, config=test_config)
