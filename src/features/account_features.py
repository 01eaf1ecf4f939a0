"""
Account Feature Module
======================

Per-account derivations behind the churn reports: lifetime and MRR,
feature adoption, and first-month engagement.
"""

from typing import Optional

import numpy as np
import pandas as pd
from loguru import logger

from config import get_config


class AccountFeatureBuilder:
    """Build one-row-per-account feature frames from the source tables."""

    def __init__(self, config: Optional[dict] = None):
        """
        Initialize AccountFeatureBuilder.

        Args:
            config: Configuration dictionary
        """
        self.config = config or get_config()
        self.analysis_config = self.config.get("analysis", {})
        self.engagement_window_days = int(self.analysis_config.get("engagement_window_days", 30))

    def build_account_lifetime(
        self,
        accounts: pd.DataFrame,
        subscriptions: pd.DataFrame,
        churn_status: pd.DataFrame,
        as_of: pd.Timestamp
    ) -> pd.DataFrame:
        """
        Derive lifetime, churn flag and total MRR for every account.

        Args:
            accounts: Cleaned accounts table
            subscriptions: Cleaned subscriptions table
            churn_status: One churn_date per churned account
            as_of: Date active lifetimes are measured to

        Returns:
            DataFrame with account_id, industry, plan_tier, signup_date,
            churn_date, lifetime_days, is_churned, total_mrr
        """
        mrr = (
            subscriptions.groupby("account_id", as_index=False)["mrr_amount"]
            .sum()
            .rename(columns={"mrr_amount": "total_mrr"})
        )

        df = accounts[["account_id", "industry", "plan_tier", "signup_date"]].merge(
            churn_status[["account_id", "churn_date"]], on="account_id", how="left"
        )
        df = df.merge(mrr, on="account_id", how="left")

        df["total_mrr"] = df["total_mrr"].fillna(0.0)
        df["is_churned"] = df["churn_date"].notna()

        end_date = df["churn_date"].where(df["is_churned"], as_of)
        df["lifetime_days"] = (pd.to_datetime(end_date) - df["signup_date"]).dt.days

        logger.debug(f"Built lifetime features for {len(df)} accounts")
        return df

    def build_feature_adoption(
        self,
        subscriptions: pd.DataFrame,
        churn_status: pd.DataFrame,
        feature_usage: pd.DataFrame
    ) -> pd.DataFrame:
        """
        Derive feature breadth and usage volume for every subscribed account.

        Usage is joined through subscription_id, so accounts without a
        subscription are not represented.

        Args:
            subscriptions: Cleaned subscriptions table
            churn_status: One churn_date per churned account
            feature_usage: Cleaned feature usage table

        Returns:
            DataFrame with account_id, customer_status, unique_features_used,
            total_usage_count, avg_usage_per_feature
        """
        subs = subscriptions[["subscription_id", "account_id"]].merge(
            churn_status[["account_id", "churn_date"]], on="account_id", how="left"
        )
        subs["customer_status"] = np.where(subs["churn_date"].notna(), "Churned", "Active")

        usage = feature_usage[["subscription_id", "feature_name", "usage_count"]]
        joined = subs.merge(usage, on="subscription_id", how="left")

        df = (
            joined.groupby(["account_id", "customer_status"], as_index=False)
            .agg(
                unique_features_used=("feature_name", "nunique"),
                usage_rows=("usage_count", "count"),
                total_usage_count=("usage_count", "sum"),
                avg_usage_per_feature=("usage_count", "mean"),
            )
        )

        # No usage rows means no total, not a total of zero
        df["total_usage_count"] = df["total_usage_count"].where(df["usage_rows"] > 0)
        return df.drop(columns=["usage_rows"])

    def build_first_month_activity(
        self,
        accounts: pd.DataFrame,
        churn_status: pd.DataFrame,
        feature_usage: pd.DataFrame,
        support_tickets: pd.DataFrame,
        window_days: Optional[int] = None
    ) -> pd.DataFrame:
        """
        Derive engagement inside the first days after signup.

        Usage and tickets count when their date is at most ``window_days``
        after signup. Usage and tickets are aggregated separately before
        joining, so neither inflates the other.

        Args:
            accounts: Cleaned accounts table
            churn_status: One churn_date per churned account
            feature_usage: Cleaned feature usage table with account_id
            support_tickets: Cleaned support tickets table
            window_days: Window length; defaults to config

        Returns:
            DataFrame with account_id, industry, is_churned,
            days_active_first_month, unique_features_first_month,
            total_usage_first_month, support_tickets_first_month
        """
        window_days = self.engagement_window_days if window_days is None else window_days
        signups = accounts[["account_id", "industry", "signup_date"]]

        usage = feature_usage[["account_id", "feature_name", "usage_date", "usage_count"]].merge(
            signups[["account_id", "signup_date"]], on="account_id", how="inner"
        )
        usage = usage[(usage["usage_date"] - usage["signup_date"]).dt.days <= window_days]
        usage_stats = usage.groupby("account_id", as_index=False).agg(
            days_active_first_month=("usage_date", "nunique"),
            unique_features_first_month=("feature_name", "nunique"),
            usage_rows=("usage_count", "count"),
            total_usage_first_month=("usage_count", "sum"),
        )
        usage_stats["total_usage_first_month"] = usage_stats["total_usage_first_month"].where(
            usage_stats["usage_rows"] > 0
        )
        usage_stats = usage_stats.drop(columns=["usage_rows"])

        tickets = support_tickets[["account_id", "ticket_id", "created_date"]].merge(
            signups[["account_id", "signup_date"]], on="account_id", how="inner"
        )
        tickets = tickets[(tickets["created_date"] - tickets["signup_date"]).dt.days <= window_days]
        ticket_stats = tickets.groupby("account_id", as_index=False).agg(
            support_tickets_first_month=("ticket_id", "nunique"),
        )

        df = signups.merge(churn_status[["account_id", "churn_date"]], on="account_id", how="left")
        df["is_churned"] = df["churn_date"].notna()
        df = df.merge(usage_stats, on="account_id", how="left").merge(
            ticket_stats, on="account_id", how="left"
        )

        for col in ["days_active_first_month", "unique_features_first_month", "support_tickets_first_month"]:
            df[col] = df[col].fillna(0).astype(int)

        logger.debug(f"Built first {window_days} day activity for {len(df)} accounts")
        return df[[
            "account_id",
            "industry",
            "is_churned",
            "days_active_first_month",
            "unique_features_first_month",
            "total_usage_first_month",
            "support_tickets_first_month",
        ]]
