"""
Churn Metrics Calculator
========================

Aggregates the per-account feature frames into the five churn reports.
"""

from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Union

import pandas as pd
from loguru import logger

from config import get_config
from src.data import (
    ACCOUNTS,
    CHURN_EVENTS,
    FEATURE_USAGE,
    SUBSCRIPTIONS,
    SUPPORT_TICKETS,
    DataPreprocessor,
)
from src.features import AccountFeatureBuilder
from src.utils.exceptions import UnknownReportError
from src.utils.helpers import resolve_as_of, round_half_up, safe_divide

CHURN_SUMMARY_COLUMNS = [
    "total_accounts",
    "churned_accounts",
    "churn_rate_pct",
    "avg_lifetime_days_churned",
    "avg_lifetime_days_active",
    "total_mrr_lost",
]

REASON_COLUMNS = ["reason_code", "churn_count", "pct_of_total_churn", "avg_refund", "unique_accounts"]

ADOPTION_COLUMNS = [
    "customer_status",
    "num_customers",
    "avg_features_used",
    "avg_total_usage",
    "avg_usage_per_feature",
]

ENGAGEMENT_COLUMNS = [
    "industry",
    "is_churned",
    "customer_count",
    "avg_days_active",
    "avg_features_used",
    "avg_total_usage",
    "avg_support_tickets",
]

STATUS_ORDER = ["Active", "Churned"]


def _mean(values: pd.Series, decimals: int) -> Optional[float]:
    """Rounded mean ignoring nulls; None when nothing is left."""
    values = values.dropna()
    if values.empty:
        return None
    return round_half_up(values.mean(), decimals)


class ChurnMetricsCalculator:
    """Compute churn reports from the five source tables."""

    def __init__(
        self,
        tables: Dict[str, pd.DataFrame],
        config: Optional[dict] = None,
        as_of: Optional[Union[str, date, datetime]] = None
    ):
        """
        Initialize ChurnMetricsCalculator.

        Args:
            tables: Mapping of logical table name to raw DataFrame
            config: Configuration dictionary
            as_of: Date active lifetimes are measured to; defaults to
                ``analysis.as_of_date`` from config, then today
        """
        self.config = config or get_config()
        self.analysis_config = self.config.get("analysis", {})
        self.as_of = resolve_as_of(as_of or self.analysis_config.get("as_of_date"))

        self.preprocessor = DataPreprocessor(self.config)
        self.feature_builder = AccountFeatureBuilder(self.config)

        self.tables = self.preprocessor.prepare_tables(tables)
        self.churn_status = self.preprocessor.resolve_churn_status(self.tables[CHURN_EVENTS])

        logger.info(
            f"Calculator ready: {len(self.tables[ACCOUNTS])} accounts, "
            f"{len(self.churn_status)} churned, as of {self.as_of.date()}"
        )

    @property
    def reports(self) -> Dict[str, Callable[[], pd.DataFrame]]:
        """Report name to the method that builds it."""
        return {
            "overall": self.overall_churn_metrics,
            "segments": self.segment_churn,
            "reasons": self.churn_reason_analysis,
            "feature_adoption": self.feature_adoption_vs_churn,
            "early_engagement": self.early_engagement_predictors,
        }

    def account_lifetime(self) -> pd.DataFrame:
        """Per-account lifetime, churn flag and MRR."""
        return self.feature_builder.build_account_lifetime(
            self.tables[ACCOUNTS],
            self.tables[SUBSCRIPTIONS],
            self.churn_status,
            self.as_of,
        )

    @staticmethod
    def summarise_churn(accounts: pd.DataFrame) -> Dict[str, Optional[float]]:
        """
        Aggregate churn metrics over a set of accounts.

        An empty set reports a churn rate of 0.0 and no average lifetimes.

        Args:
            accounts: Rows from ``account_lifetime``

        Returns:
            Dictionary keyed by CHURN_SUMMARY_COLUMNS
        """
        churned = accounts["is_churned"].astype(bool)
        total_accounts = len(accounts)
        churned_accounts = int(churned.sum())

        return {
            "total_accounts": total_accounts,
            "churned_accounts": churned_accounts,
            "churn_rate_pct": round_half_up(safe_divide(100.0 * churned_accounts, total_accounts), 2),
            "avg_lifetime_days_churned": _mean(accounts.loc[churned, "lifetime_days"], 0),
            "avg_lifetime_days_active": _mean(accounts.loc[~churned, "lifetime_days"], 0),
            "total_mrr_lost": round_half_up(float(accounts.loc[churned, "total_mrr"].sum()), 2),
        }

    def overall_churn_metrics(self) -> pd.DataFrame:
        """
        Company-wide churn rate, lifetimes and MRR lost.

        Returns:
            Single-row DataFrame with a ``segment`` column set to "Overall"
        """
        summary = self.summarise_churn(self.account_lifetime())
        logger.info(
            f"Overall churn: {summary['churned_accounts']}/{summary['total_accounts']} "
            f"accounts ({summary['churn_rate_pct']}%)"
        )
        return pd.DataFrame([{"segment": "Overall", **summary}], columns=["segment"] + CHURN_SUMMARY_COLUMNS)

    def segment_churn(self) -> pd.DataFrame:
        """
        Churn metrics per (industry, plan_tier), highest churn rate first.

        Returns:
            DataFrame with industry, plan_tier and the churn summary columns
        """
        lifetime = self.account_lifetime()

        rows: List[dict] = []
        for (industry, plan_tier), group in lifetime.groupby(["industry", "plan_tier"], dropna=False, sort=True):
            rows.append({"industry": industry, "plan_tier": plan_tier, **self.summarise_churn(group)})

        df = pd.DataFrame(rows, columns=["industry", "plan_tier"] + CHURN_SUMMARY_COLUMNS)
        df = df.sort_values("churn_rate_pct", ascending=False, kind="mergesort").reset_index(drop=True)

        logger.info(f"Computed churn for {len(df)} segments")
        return df

    def churn_reason_analysis(self) -> pd.DataFrame:
        """
        Churn events grouped by reason code, most frequent first.

        Every churn event row counts, including repeat events for an account.

        Returns:
            DataFrame with REASON_COLUMNS
        """
        events = self.tables[CHURN_EVENTS]
        total_events = len(events)

        rows = []
        for reason_code, group in events.groupby("reason_code", dropna=False, sort=True):
            rows.append({
                "reason_code": None if pd.isna(reason_code) else reason_code,
                "churn_count": len(group),
                "pct_of_total_churn": round_half_up(safe_divide(100.0 * len(group), total_events), 2),
                "avg_refund": _mean(group["refund_amount_usd"], 2),
                "unique_accounts": int(group["account_id"].nunique()),
            })

        df = pd.DataFrame(rows, columns=REASON_COLUMNS)
        df = df.sort_values("churn_count", ascending=False, kind="mergesort").reset_index(drop=True)

        logger.info(f"Analysed {total_events} churn events across {len(df)} reasons")
        return df

    def feature_adoption_vs_churn(self) -> pd.DataFrame:
        """
        Feature breadth and usage volume, churned versus active customers.

        Returns:
            DataFrame with ADOPTION_COLUMNS, Active before Churned
        """
        adoption = self.feature_builder.build_feature_adoption(
            self.tables[SUBSCRIPTIONS],
            self.churn_status,
            self.tables[FEATURE_USAGE],
        )

        rows = []
        for status in STATUS_ORDER:
            group = adoption[adoption["customer_status"] == status]
            if group.empty:
                continue
            rows.append({
                "customer_status": status,
                "num_customers": len(group),
                "avg_features_used": _mean(group["unique_features_used"], 2),
                "avg_total_usage": _mean(group["total_usage_count"], 0),
                "avg_usage_per_feature": _mean(group["avg_usage_per_feature"], 2),
            })

        logger.info(f"Compared feature adoption for {len(adoption)} customers")
        return pd.DataFrame(rows, columns=ADOPTION_COLUMNS)

    def early_engagement_predictors(self, window_days: Optional[int] = None) -> pd.DataFrame:
        """
        First-month engagement per industry, churned versus active.

        Args:
            window_days: Days after signup that count as early engagement;
                defaults to ``analysis.engagement_window_days``

        Returns:
            DataFrame with ENGAGEMENT_COLUMNS ordered by industry, then
            churned before active
        """
        activity = self.feature_builder.build_first_month_activity(
            self.tables[ACCOUNTS],
            self.churn_status,
            self.tables[FEATURE_USAGE],
            self.tables[SUPPORT_TICKETS],
            window_days=window_days,
        )

        rows = []
        for (industry, is_churned), group in activity.groupby(["industry", "is_churned"], dropna=False):
            rows.append({
                "industry": industry,
                "is_churned": bool(is_churned),
                "customer_count": len(group),
                "avg_days_active": _mean(group["days_active_first_month"], 1),
                "avg_features_used": _mean(group["unique_features_first_month"], 1),
                "avg_total_usage": _mean(group["total_usage_first_month"], 0),
                "avg_support_tickets": _mean(group["support_tickets_first_month"], 1),
            })

        df = pd.DataFrame(rows, columns=ENGAGEMENT_COLUMNS)
        df = df.sort_values(
            ["industry", "is_churned"], ascending=[True, False], kind="mergesort", na_position="last"
        ).reset_index(drop=True)

        logger.info(f"Computed early engagement for {len(activity)} accounts")
        return df

    def run_report(self, name: str) -> pd.DataFrame:
        """
        Build a single report by name.

        Args:
            name: One of ``reports`` keys

        Returns:
            Report DataFrame
        """
        if name not in self.reports:
            raise UnknownReportError(f"Unknown report: {name}. Choose from {list(self.reports)}")
        return self.reports[name]()

    def run_all(self) -> Dict[str, pd.DataFrame]:
        """
        Build every report.

        Returns:
            Mapping of report name to DataFrame
        """
        logger.info("Generating all churn reports...")
        return {name: build() for name, build in self.reports.items()}
