"""
Data Loader Module
==================

Handles loading the churn source tables from files or a database,
basic validation, and writing report tables back out.
"""

from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd
from loguru import logger
from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from config import RAW_DATA_DIR, REPORTS_DIR, get_config
from src.utils.exceptions import DataQualityError
from .schema import OPTIONAL_COLUMNS, REQUIRED_COLUMNS, TABLE_NAMES, find_missing_columns

SUPPORTED_EXTENSIONS = [".csv", ".xlsx", ".xls", ".parquet"]


class DataLoader:
    """Load and manage the source tables for churn reporting."""

    def __init__(
        self,
        config: Optional[dict] = None,
        data_dir: Optional[Union[str, Path]] = None,
        reports_dir: Optional[Union[str, Path]] = None
    ):
        """
        Initialize DataLoader.

        Args:
            config: Configuration dictionary. If None, loads from config.yaml
            data_dir: Directory holding the source files
            reports_dir: Directory reports are written to
        """
        self.config = config or get_config()
        self.raw_data_path = Path(data_dir) if data_dir else RAW_DATA_DIR
        self.reports_path = Path(reports_dir) if reports_dir else REPORTS_DIR
        self.file_names = self.config.get("data", {}).get("files", {})

    def resolve_path(self, name: str, filename: Optional[str] = None) -> Optional[Path]:
        """
        Find the file holding a source table.

        Args:
            name: Logical table name
            filename: File name inside the data directory; defaults to the
                configured file for the table, then to ``<name>.csv``

        Returns:
            Path to the file, or None if no supported file exists
        """
        filename = filename or self.file_names.get(name, f"{name}.csv")
        file_path = self.raw_data_path / filename
        if file_path.exists():
            return file_path

        # Try different file extensions
        for ext in SUPPORTED_EXTENSIONS:
            alt_path = self.raw_data_path / f"{Path(filename).stem}{ext}"
            if alt_path.exists():
                return alt_path

        return None

    def load_table(
        self,
        name: str,
        filename: Optional[str] = None,
        **kwargs
    ) -> pd.DataFrame:
        """
        Load one source table from a file.

        Args:
            name: Logical table name
            filename: File name inside the data directory; defaults to the
                configured file for the table, then to ``<name>.csv``
            **kwargs: Additional arguments to pass to the pandas reader

        Returns:
            DataFrame containing the table
        """
        if name not in REQUIRED_COLUMNS:
            raise DataQualityError(f"Unknown source table: {name}", table=name)

        file_path = self.resolve_path(name, filename)
        if file_path is None:
            expected = self.raw_data_path / (filename or self.file_names.get(name, f"{name}.csv"))
            logger.error(f"Data file not found: {expected}")
            raise FileNotFoundError(f"Data file not found: {expected}")

        logger.info(f"Loading {name} from {file_path}")

        # Load based on file extension
        ext = file_path.suffix.lower()
        if ext == ".csv":
            df = pd.read_csv(file_path, **kwargs)
        elif ext in [".xlsx", ".xls"]:
            df = pd.read_excel(file_path, **kwargs)
        elif ext == ".parquet":
            df = pd.read_parquet(file_path, **kwargs)
        else:
            raise ValueError(f"Unsupported file format: {ext}")

        self.validate_table(name, df)
        logger.info(f"Loaded {len(df)} rows and {len(df.columns)} columns for {name}")
        return df

    def load_all_tables(self) -> Dict[str, pd.DataFrame]:
        """
        Load every source table from the data directory.

        Returns:
            Mapping of logical table name to DataFrame
        """
        return {name: self.load_table(name) for name in TABLE_NAMES}

    def load_from_database(
        self,
        engine: Engine,
        table_names: Optional[Dict[str, str]] = None
    ) -> Dict[str, pd.DataFrame]:
        """
        Read every source table from a database.

        Args:
            engine: SQLAlchemy engine bound to the external store
            table_names: Mapping of logical name to physical table name.
                Defaults to the ``database.tables`` config section.

        Returns:
            Mapping of logical table name to DataFrame
        """
        table_names = table_names or self.config.get("database", {}).get("tables", {})
        available = set(inspect(engine).get_table_names())

        tables = {}
        for name in TABLE_NAMES:
            physical = table_names.get(name, name)
            if physical not in available:
                logger.error(f"Table {physical} not found in database")
                raise DataQualityError(f"Source table not found: {physical}", table=name)

            logger.info(f"Reading {name} from table {physical}")
            df = pd.read_sql_table(physical, con=engine)
            self.validate_table(name, df)
            tables[name] = df

        return tables

    def validate_table(self, name: str, df: pd.DataFrame) -> None:
        """
        Check that a table carries the columns the reports rely on.

        Args:
            name: Logical table name
            df: Table contents

        Raises:
            DataQualityError: If a required column is missing
        """
        missing = find_missing_columns(name, df.columns)
        if missing:
            logger.error(f"Table {name} is missing columns: {missing}")
            raise DataQualityError(
                f"Table {name} is missing required columns: {missing}",
                table=name,
                column=missing[0]
            )

    def validate_data(self, df: pd.DataFrame, name: Optional[str] = None) -> dict:
        """
        Summarise data quality for a table.

        Args:
            df: DataFrame to validate
            name: Logical table name, used to report missing columns

        Returns:
            Dictionary with validation results
        """
        validation_results = {
            "total_rows": len(df),
            "total_columns": len(df.columns),
            "missing_values": df.isnull().sum().to_dict(),
            "missing_percentage": (df.isnull().sum() / max(len(df), 1) * 100).to_dict(),
            "duplicates": int(df.duplicated().sum()),
            "dtypes": df.dtypes.astype(str).to_dict(),
        }

        if name in REQUIRED_COLUMNS:
            expected = REQUIRED_COLUMNS[name] + OPTIONAL_COLUMNS.get(name, [])
            validation_results["missing_columns"] = [c for c in expected if c not in df.columns]

        return validation_results

    def save_report(
        self,
        df: pd.DataFrame,
        name: str,
        fmt: Optional[str] = None
    ) -> Path:
        """
        Save a report table.

        Args:
            df: Report to save
            name: Report name, used as the file stem
            fmt: Output format ('csv', 'parquet', 'json'); defaults to config

        Returns:
            Path to saved file
        """
        fmt = (fmt or self.config.get("reports", {}).get("format", "csv")).lower()
        file_path = self.reports_path / f"{name}.{fmt}"
        file_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Saving {name} report to {file_path}")

        if fmt == "csv":
            df.to_csv(file_path, index=False)
        elif fmt == "parquet":
            df.to_parquet(file_path, index=False)
        elif fmt == "json":
            df.to_json(file_path, orient="records", indent=2)
        else:
            raise ValueError(f"Unsupported file format: {fmt}")

        return file_path

    def list_missing_files(self) -> List[str]:
        """Return the configured source files with no readable file in the data directory."""
        return [
            self.file_names.get(name, f"{name}.csv")
            for name in TABLE_NAMES
            if self.resolve_path(name) is None
        ]
