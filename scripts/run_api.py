"""
Run FastAPI Server
==================

Script to start the churn reports API.

Usage:
    python scripts/run_api.py
    python scripts/run_api.py --port 8080 --reload
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import uvicorn
from loguru import logger

from config import get_config
from src.utils import setup_logging


def parse_args(api_config: dict):
    """Parse command line arguments, defaulting to the api config section."""
    parser = argparse.ArgumentParser(description="Run the churn reports API")

    parser.add_argument(
        "--host",
        type=str,
        default=api_config.get("host", "0.0.0.0"),
        help="Host to bind to"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=api_config.get("port", 8000),
        help="Port to bind to"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        default=api_config.get("reload", False),
        help="Enable auto-reload"
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of workers"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )

    return parser.parse_args()


def main():
    """Run the API server."""
    config = get_config()
    args = parse_args(config.get("api", {}))

    setup_logging(level=args.log_level, log_file=config.get("logging", {}).get("file"))
    logger.info(f"Serving churn reports on http://{args.host}:{args.port} (docs at /docs)")

    uvicorn.run(
        "src.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=args.workers if not args.reload else 1,
        log_level=args.log_level.lower()
    )


if __name__ == "__main__":
    main()
