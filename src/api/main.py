"""
FastAPI Main Application
========================

REST API serving the churn diagnostic reports.
"""

import json
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import pandas as pd
from fastapi import FastAPI, Depends, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import get_config
from src.metrics import ChurnMetricsCalculator
from src.utils.exceptions import DataQualityError, UnknownReportError
from .schemas import (
    ChurnReason,
    EarlyEngagement,
    FeatureAdoption,
    HealthResponse,
    OverallChurnMetrics,
    ReportBundle,
    SegmentChurn,
)
from .database import get_db, db_manager

# Initialize FastAPI app
app = FastAPI(
    title="Churn Diagnostics API",
    description="Churn rate, segment, reason and engagement reports",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def frame_to_records(df: pd.DataFrame) -> List[Dict]:
    """Convert a report DataFrame to JSON-safe records (NaN becomes None)."""
    return json.loads(df.to_json(orient="records"))


def get_tables() -> Dict[str, pd.DataFrame]:
    """Read the source tables from the configured store."""
    return db_manager.load_tables()


def get_calculator(
    as_of: Optional[date] = Query(None, description="Date active lifetimes are measured to"),
    tables: Dict[str, pd.DataFrame] = Depends(get_tables)
) -> ChurnMetricsCalculator:
    """Build a calculator over the current source tables."""
    return ChurnMetricsCalculator(tables, config=get_config(), as_of=as_of)


@app.exception_handler(DataQualityError)
async def data_quality_handler(request: Request, exc: DataQualityError):
    """Report malformed source data as an unprocessable request."""
    logger.error(f"Data quality error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc), "table": exc.table, "column": exc.column}
    )


@app.on_event("startup")
async def startup_event():
    """Execute on application startup."""
    logger.info("Churn Diagnostics API started")


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "message": "Churn Diagnostics API",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health", response_model=HealthResponse, tags=["Health"])
def health_check(db: Session = Depends(get_db)):
    """Check API health and source table row counts."""
    connected = db_manager.check_connection()
    counts = {}
    if connected:
        try:
            counts = db_manager.table_counts(db)
        except SQLAlchemyError as e:
            logger.warning(f"Could not count source tables: {e}")

    return HealthResponse(
        status="healthy" if connected else "degraded",
        database_connected=connected,
        table_counts=counts,
        timestamp=datetime.now()
    )


@app.get("/reports", response_model=ReportBundle, tags=["Reports"])
def get_all_reports(calculator: ChurnMetricsCalculator = Depends(get_calculator)):
    """Compute every churn report against one snapshot of the source tables."""
    reports = calculator.run_all()
    return ReportBundle(
        as_of=calculator.as_of.date(),
        generated_at=datetime.now(),
        **{name: frame_to_records(df) for name, df in reports.items()}
    )


@app.get("/reports/overall", response_model=List[OverallChurnMetrics], tags=["Reports"])
def get_overall_report(calculator: ChurnMetricsCalculator = Depends(get_calculator)):
    """Company-wide churn rate, lifetimes and MRR lost."""
    return frame_to_records(calculator.overall_churn_metrics())


@app.get("/reports/segments", response_model=List[SegmentChurn], tags=["Reports"])
def get_segment_report(calculator: ChurnMetricsCalculator = Depends(get_calculator)):
    """Churn per industry and plan tier, highest churn rate first."""
    return frame_to_records(calculator.segment_churn())


@app.get("/reports/reasons", response_model=List[ChurnReason], tags=["Reports"])
def get_reason_report(calculator: ChurnMetricsCalculator = Depends(get_calculator)):
    """Churn events by reason code."""
    return frame_to_records(calculator.churn_reason_analysis())


@app.get("/reports/feature-adoption", response_model=List[FeatureAdoption], tags=["Reports"])
def get_feature_adoption_report(calculator: ChurnMetricsCalculator = Depends(get_calculator)):
    """Feature adoption of churned versus active customers."""
    return frame_to_records(calculator.feature_adoption_vs_churn())


@app.get("/reports/early-engagement", response_model=List[EarlyEngagement], tags=["Reports"])
def get_early_engagement_report(
    calculator: ChurnMetricsCalculator = Depends(get_calculator),
    window_days: Optional[int] = Query(None, ge=0, le=365, description="Days after signup to include")
):
    """First-month engagement by industry and churn status."""
    return frame_to_records(calculator.early_engagement_predictors(window_days=window_days))


@app.get("/reports/{report_name}", response_model=List[Dict[str, Any]], tags=["Reports"])
def get_report_by_name(
    report_name: str,
    calculator: ChurnMetricsCalculator = Depends(get_calculator)
):
    """
    Compute a single report by name.

    Args:
        report_name: Report name, e.g. ``segments`` or ``feature-adoption``

    Returns:
        Report rows
    """
    try:
        return frame_to_records(calculator.run_report(report_name.replace("-", "_")))
    except DataQualityError:
        raise
    except UnknownReportError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Report error: {e}")
        raise HTTPException(status_code=500, detail=str(e))


# Run with: uvicorn src.api.main:app --reload
if __name__ == "__main__":
    import uvicorn

    config = get_config()
    api_config = config.get("api", {})

    uvicorn.run(
        "src.api.main:app",
        host=api_config.get("host", "0.0.0.0"),
        port=api_config.get("port", 8000),
        reload=api_config.get("reload", True)
    )
