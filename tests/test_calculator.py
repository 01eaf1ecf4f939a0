import pandas as pd
import pytest

from src.metrics import ChurnMetricsCalculator
from src.utils.exceptions import DataQualityError, UnknownReportError


def test_overall_churn_metrics(calculator):
    row = calculator.overall_churn_metrics().iloc[0]

    assert row["segment"] == "Overall"
    assert row["total_accounts"] == 5
    assert row["churned_accounts"] == 3
    assert row["churn_rate_pct"] == 60.0
    assert row["avg_lifetime_days_churned"] == 50.0
    assert row["avg_lifetime_days_active"] == 274.0
    assert row["total_mrr_lost"] == 450.0


def test_ten_accounts_three_churned_example(test_config):
    accounts = pd.DataFrame({
        "account_id": [f"A{i}" for i in range(10)],
        "industry": ["Tech"] * 10,
        "plan_tier": ["Pro"] * 10,
        "signup_date": ["2024-01-01"] * 10,
    })
    subscriptions = pd.DataFrame({
        "subscription_id": [f"S{i}" for i in range(10)],
        "account_id": [f"A{i}" for i in range(10)],
        "mrr_amount": [100.0, 200.0, 300.0] + [50.0] * 7,
    })
    churn_events = pd.DataFrame({
        "account_id": ["A0", "A1", "A2"],
        "churn_date": ["2024-02-01", "2024-03-01", "2024-04-01"],
        "reason_code": ["pricing", "pricing", "budget"],
        "refund_amount_usd": [0.0, 0.0, 0.0],
    })
    tables = {
        "accounts": accounts,
        "subscriptions": subscriptions,
        "churn_events": churn_events,
        "feature_usage": pd.DataFrame(columns=["subscription_id", "feature_name", "usage_date", "usage_count"]),
        "support_tickets": pd.DataFrame(columns=["ticket_id", "account_id", "created_date"]),
    }

    row = ChurnMetricsCalculator(tables, config=test_config).overall_churn_metrics().iloc[0]

    assert row["total_mrr_lost"] == 600.0
    assert row["churn_rate_pct"] == 30.0


def test_segment_churn_ordering_and_values(calculator):
    segments = calculator.segment_churn()

    assert list(zip(segments["industry"], segments["plan_tier"])) == [
        ("Tech", "Basic"),
        ("Retail", "Basic"),
        ("Tech", "Pro"),
    ]
    assert segments["churn_rate_pct"].tolist() == [100.0, 50.0, 50.0]

    tech_basic = segments.iloc[0]
    assert tech_basic["avg_lifetime_days_churned"] == 0.0
    assert pd.isna(tech_basic["avg_lifetime_days_active"])
    assert tech_basic["total_mrr_lost"] == 50.0

    tech_pro = segments.iloc[2]
    assert tech_pro["avg_lifetime_days_churned"] == 60.0
    assert tech_pro["avg_lifetime_days_active"] == 365.0
    assert tech_pro["total_mrr_lost"] == 100.0


def test_segment_churned_accounts_sum_to_overall(calculator):
    overall = calculator.overall_churn_metrics().iloc[0]
    segments = calculator.segment_churn()

    assert segments["churned_accounts"].sum() == overall["churned_accounts"]
    assert segments["total_accounts"].sum() == overall["total_accounts"]


def test_churn_rate_matches_counts(calculator):
    for _, row in calculator.segment_churn().iterrows():
        expected = 100.0 * row["churned_accounts"] / row["total_accounts"]
        assert row["churn_rate_pct"] == pytest.approx(expected, abs=0.005)


def test_churn_reason_analysis(calculator):
    reasons = calculator.churn_reason_analysis()

    assert reasons["reason_code"].tolist() == ["pricing", "support"]
    assert reasons["churn_count"].tolist() == [2, 1]
    assert reasons["pct_of_total_churn"].tolist() == [66.67, 33.33]
    assert reasons["avg_refund"].tolist() == [50.0, 100.0]
    assert reasons["unique_accounts"].tolist() == [2, 1]


def test_feature_adoption_vs_churn(calculator):
    adoption = calculator.feature_adoption_vs_churn().set_index("customer_status")

    assert adoption.index.tolist() == ["Active", "Churned"]

    active = adoption.loc["Active"]
    assert active["num_customers"] == 2
    assert active["avg_features_used"] == 2.0
    assert active["avg_total_usage"] == 38.0
    assert active["avg_usage_per_feature"] == 9.5

    churned = adoption.loc["Churned"]
    assert churned["num_customers"] == 3
    assert churned["avg_features_used"] == 1.0
    assert churned["avg_total_usage"] == 11.0
    assert churned["avg_usage_per_feature"] == 4.33


def test_early_engagement_predictors(calculator):
    engagement = calculator.early_engagement_predictors()

    assert list(zip(engagement["industry"], engagement["is_churned"])) == [
        ("Retail", True),
        ("Retail", False),
        ("Tech", True),
        ("Tech", False),
    ]

    tech_churned = engagement.iloc[2]
    assert tech_churned["customer_count"] == 2
    assert tech_churned["avg_days_active"] == 0.5
    assert tech_churned["avg_features_used"] == 1.0
    assert tech_churned["avg_total_usage"] == 14.0
    assert tech_churned["avg_support_tickets"] == 1.0

    tech_active = engagement.iloc[3]
    assert tech_active["avg_days_active"] == 3.0
    assert tech_active["avg_total_usage"] == 30.0
    assert tech_active["avg_support_tickets"] == 1.0

    retail_active = engagement.iloc[1]
    assert pd.isna(retail_active["avg_total_usage"])
    assert retail_active["avg_support_tickets"] == 1.0


def test_early_engagement_window_override(calculator):
    engagement = calculator.early_engagement_predictors(window_days=10)
    tech_active = engagement[(engagement["industry"] == "Tech") & ~engagement["is_churned"]].iloc[0]

    # Only the 2024-01-10 usage of A2 falls within ten days of signup
    assert tech_active["avg_days_active"] == 1.0
    assert tech_active["avg_total_usage"] == 20.0


def test_empty_dataset_reports_no_data(empty_tables, test_config):
    calculator = ChurnMetricsCalculator(empty_tables, config=test_config)

    overall = calculator.overall_churn_metrics().iloc[0]
    assert overall["total_accounts"] == 0
    assert overall["churned_accounts"] == 0
    assert overall["churn_rate_pct"] == 0.0
    assert overall["total_mrr_lost"] == 0.0
    assert pd.isna(overall["avg_lifetime_days_churned"])

    assert calculator.segment_churn().empty
    assert calculator.churn_reason_analysis().empty
    assert calculator.feature_adoption_vs_churn().empty
    assert calculator.early_engagement_predictors().empty


def test_repeated_churn_events_do_not_inflate_account_metrics(source_tables, test_config):
    extra = pd.DataFrame({
        "account_id": ["A1"],
        "churn_date": ["2024-04-01"],
        "reason_code": ["competitor"],
        "refund_amount_usd": [0.0],
    })
    source_tables["churn_events"] = pd.concat([source_tables["churn_events"], extra], ignore_index=True)

    calculator = ChurnMetricsCalculator(source_tables, config=test_config)
    overall = calculator.overall_churn_metrics().iloc[0]

    assert overall["total_accounts"] == 5
    assert overall["churned_accounts"] == 3
    assert overall["total_mrr_lost"] == 450.0
    # A1 now churns on 2024-04-01: (91 + 0 + 90) / 3
    assert overall["avg_lifetime_days_churned"] == 60.0

    # The event-level report still counts every event
    assert calculator.churn_reason_analysis()["churn_count"].sum() == 4


def test_as_of_argument_overrides_config(source_tables, test_config):
    calculator = ChurnMetricsCalculator(source_tables, config=test_config, as_of="2025-01-31")
    overall = calculator.overall_churn_metrics().iloc[0]

    # Active lifetimes grow by 31 days; churned lifetimes do not move
    assert overall["avg_lifetime_days_active"] == 305.0
    assert overall["avg_lifetime_days_churned"] == 50.0


def test_run_all_returns_every_report(calculator):
    reports = calculator.run_all()
    assert set(reports) == {"overall", "segments", "reasons", "feature_adoption", "early_engagement"}


def test_run_report_rejects_unknown_name(calculator):
    with pytest.raises(UnknownReportError) as excinfo:
        calculator.run_report("cohorts")

    assert str(excinfo.value).startswith("Unknown report: cohorts")


def test_table_missing_column_raises_data_quality_error(source_tables, test_config):
    source_tables["churn_events"] = source_tables["churn_events"].drop(columns=["reason_code"])

    with pytest.raises(DataQualityError) as excinfo:
        ChurnMetricsCalculator(source_tables, config=test_config).overall_churn_metrics()

    assert excinfo.value.table == "churn_events"
    assert excinfo.value.column == "reason_code"
