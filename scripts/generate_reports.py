"""
Report Generation Script
========================

Command-line script to compute the churn diagnostic reports.

Usage:
    python scripts/generate_reports.py --source files --format csv
    python scripts/generate_reports.py --source database --as-of 2026-01-31
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from loguru import logger

from config import get_config, RAW_DATA_DIR
from src.data import DataLoader
from src.metrics import ChurnMetricsCalculator
from src.utils import DataQualityError, setup_logging

REPORT_CHOICES = ["all", "overall", "segments", "reasons", "feature_adoption", "early_engagement"]


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Generate churn diagnostic reports")

    parser.add_argument(
        "--source",
        type=str,
        default=None,
        choices=["files", "database"],
        help="Where to read the source tables from (default: config data.source)"
    )
    parser.add_argument(
        "--data-dir",
        type=str,
        default=str(RAW_DATA_DIR),
        help="Directory holding the source files"
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Directory reports are written to (default: reports/)"
    )
    parser.add_argument(
        "--as-of",
        type=str,
        default=None,
        help="Date active lifetimes are measured to (YYYY-MM-DD, default: today)"
    )
    parser.add_argument(
        "--report",
        type=str,
        default="all",
        choices=REPORT_CHOICES,
        help="Report to generate"
    )
    parser.add_argument(
        "--format",
        type=str,
        default=None,
        choices=["csv", "parquet", "json"],
        help="Output format (default: config reports.format)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )

    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main report generation function."""
    args = parse_args(argv)

    # Setup logging
    config = get_config()
    setup_logging(level=args.log_level, log_file=config.get("logging", {}).get("file"))
    logger.info("Starting churn report generation...")

    source = args.source or config.get("data", {}).get("source", "files")
    loader = DataLoader(config, data_dir=args.data_dir, reports_dir=args.output_dir)

    try:
        if source == "database":
            from src.api.database import db_manager
            tables = db_manager.load_tables()
        else:
            missing = loader.list_missing_files()
            if missing:
                logger.error(f"Missing source files in {args.data_dir}: {missing}")
                return 1
            tables = loader.load_all_tables()

        calculator = ChurnMetricsCalculator(tables, config=config, as_of=args.as_of)

        if args.report == "all":
            reports = calculator.run_all()
        else:
            reports = {args.report: calculator.run_report(args.report)}
    except DataQualityError as e:
        logger.error(f"Cannot build reports: {e}")
        return 2

    for name, df in reports.items():
        path = loader.save_report(df, name, fmt=args.format)
        logger.info(f"\n{name} ({len(df)} rows) -> {path}\n{df.to_string(index=False)}")

    logger.info("Report generation complete!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
