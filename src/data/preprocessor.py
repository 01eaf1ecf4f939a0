"""
Data Preprocessor Module
========================

Normalises raw source tables into the shapes the churn reports expect.
"""

from typing import Dict, Optional

import pandas as pd
from loguru import logger

from config import get_config
from src.utils.exceptions import DataQualityError
from .schema import (
    ACCOUNTS,
    CHURN_EVENTS,
    DATE_COLUMNS,
    FEATURE_USAGE,
    ID_COLUMNS,
    NUMERIC_COLUMNS,
    SUBSCRIPTIONS,
    TABLE_NAMES,
    find_missing_columns,
)

CHURN_EVENT_POLICIES = ("latest", "earliest", "error")


class DataPreprocessor:
    """Clean and type the churn source tables."""

    def __init__(self, config: Optional[dict] = None):
        """
        Initialize DataPreprocessor.

        Args:
            config: Configuration dictionary
        """
        self.config = config or get_config()
        self.analysis_config = self.config.get("analysis", {})
        self.churn_event_policy = self.analysis_config.get("churn_event_policy", "latest")

        if self.churn_event_policy not in CHURN_EVENT_POLICIES:
            raise ValueError(
                f"churn_event_policy must be one of {CHURN_EVENT_POLICIES}, "
                f"got {self.churn_event_policy!r}"
            )

    def prepare_tables(self, tables: Dict[str, pd.DataFrame]) -> Dict[str, pd.DataFrame]:
        """
        Type and clean every source table.

        Args:
            tables: Mapping of logical table name to raw DataFrame

        Returns:
            Mapping of logical table name to cleaned DataFrame
        """
        missing = [name for name in TABLE_NAMES if name not in tables]
        if missing:
            raise DataQualityError(f"Missing source tables: {missing}", table=missing[0])

        for name in TABLE_NAMES:
            missing_columns = find_missing_columns(name, tables[name].columns)
            if missing_columns:
                raise DataQualityError(
                    f"Table {name} is missing required columns: {missing_columns}",
                    table=name,
                    column=missing_columns[0]
                )

        prepared = {name: self.clean_table(name, tables[name]) for name in TABLE_NAMES}
        prepared[FEATURE_USAGE] = self.resolve_usage_accounts(
            prepared[FEATURE_USAGE], prepared[SUBSCRIPTIONS]
        )
        return prepared

    def clean_table(self, name: str, df: pd.DataFrame) -> pd.DataFrame:
        """
        Parse dates, coerce numbers and drop exact duplicate rows.

        Args:
            name: Logical table name
            df: Raw DataFrame

        Returns:
            Cleaned DataFrame
        """
        df = df.copy()

        for col in ID_COLUMNS:
            if col in df.columns:
                df[col] = self._normalise_ids(df[col])

        for col in DATE_COLUMNS.get(name, []):
            df[col] = self._parse_dates(name, col, df[col])

        for col in NUMERIC_COLUMNS.get(name, []):
            df[col] = self._parse_numbers(name, col, df[col])

        # Remove duplicates
        initial_rows = len(df)
        df = df.drop_duplicates().reset_index(drop=True)
        dropped_rows = initial_rows - len(df)
        if dropped_rows > 0:
            logger.info(f"Removed {dropped_rows} duplicate rows from {name}")

        if name == ACCOUNTS and df["account_id"].duplicated().any():
            duplicated = df.loc[df["account_id"].duplicated(), "account_id"].unique().tolist()
            logger.error(f"Accounts table has repeated account_id values: {duplicated[:5]}")
            raise DataQualityError(
                f"account_id is not unique in accounts: {duplicated[:5]}",
                table=name,
                column="account_id"
            )

        return df

    def resolve_usage_accounts(
        self,
        feature_usage: pd.DataFrame,
        subscriptions: pd.DataFrame
    ) -> pd.DataFrame:
        """
        Fill feature_usage.account_id from the owning subscription.

        Args:
            feature_usage: Cleaned feature usage table
            subscriptions: Cleaned subscriptions table

        Returns:
            Feature usage with an account_id on every resolvable row
        """
        feature_usage = feature_usage.copy()
        owner = subscriptions.drop_duplicates("subscription_id").set_index("subscription_id")["account_id"]
        resolved = feature_usage["subscription_id"].map(owner)

        if "account_id" in feature_usage.columns:
            feature_usage["account_id"] = feature_usage["account_id"].fillna(resolved)
        else:
            feature_usage["account_id"] = resolved
        feature_usage["account_id"] = feature_usage["account_id"].astype("string")

        unresolved = int(feature_usage["account_id"].isna().sum())
        if unresolved:
            logger.warning(f"{unresolved} feature_usage rows have no resolvable account_id")

        return feature_usage

    def resolve_churn_status(self, churn_events: pd.DataFrame) -> pd.DataFrame:
        """
        Reduce churn events to one churn date per account.

        Events without a churn_date do not mark an account as churned. When an
        account has several dated events, the configured policy decides which
        date stands.

        Args:
            churn_events: Cleaned churn events table

        Returns:
            DataFrame with columns account_id, churn_date (one row per account)
        """
        dated = churn_events.loc[churn_events["churn_date"].notna(), ["account_id", "churn_date"]]
        repeated = dated["account_id"].duplicated(keep=False)

        if repeated.any():
            n_accounts = dated.loc[repeated, "account_id"].nunique()
            if self.churn_event_policy == "error":
                logger.error(f"{n_accounts} accounts have more than one churn event")
                raise DataQualityError(
                    f"{n_accounts} accounts have more than one churn event",
                    table=CHURN_EVENTS,
                    column="account_id"
                )
            logger.warning(
                f"{n_accounts} accounts have more than one churn event; "
                f"keeping the {self.churn_event_policy} churn_date"
            )

        ascending = self.churn_event_policy == "earliest"
        return (
            dated.sort_values("churn_date", ascending=ascending, kind="mergesort")
            .drop_duplicates("account_id", keep="first")
            .reset_index(drop=True)
        )

    @staticmethod
    def _parse_dates(table: str, column: str, values: pd.Series) -> pd.Series:
        """Parse a column to day-precision timestamps."""
        try:
            parsed = pd.to_datetime(values, errors="raise")
        except (ValueError, TypeError) as e:
            logger.error(f"Unparseable dates in {table}.{column}: {e}")
            raise DataQualityError(
                f"Unparseable dates in {table}.{column}: {e}",
                table=table,
                column=column
            ) from e

        if getattr(parsed.dt, "tz", None) is not None:
            parsed = parsed.dt.tz_localize(None)
        return parsed.dt.normalize()

    @staticmethod
    def _parse_numbers(table: str, column: str, values: pd.Series) -> pd.Series:
        """Coerce a column to floats, keeping nulls."""
        try:
            return pd.to_numeric(values, errors="raise").astype(float)
        except (ValueError, TypeError) as e:
            logger.error(f"Non-numeric values in {table}.{column}: {e}")
            raise DataQualityError(
                f"Non-numeric values in {table}.{column}: {e}",
                table=table,
                column=column
            ) from e

    @staticmethod
    def _normalise_ids(values: pd.Series) -> pd.Series:
        """Represent join keys as strings; integral floats lose their '.0'."""
        if pd.api.types.is_float_dtype(values) and (values.dropna() % 1 == 0).all():
            values = values.astype("Int64")
        return values.astype("string")
