"""
API Schemas (Pydantic Models)
=============================

Response models for the churn report endpoints.
"""

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChurnSummary(BaseModel):
    """Churn metrics shared by the overall and segment reports."""

    total_accounts: int = Field(..., ge=0, description="Number of accounts")
    churned_accounts: int = Field(..., ge=0, description="Accounts with a churn date")
    churn_rate_pct: float = Field(..., ge=0, le=100, description="Churned accounts as a percentage")
    avg_lifetime_days_churned: Optional[float] = Field(None, description="Mean lifetime of churned accounts")
    avg_lifetime_days_active: Optional[float] = Field(None, description="Mean lifetime of active accounts")
    total_mrr_lost: float = Field(..., description="MRR of churned accounts")


class OverallChurnMetrics(ChurnSummary):
    """Schema for the company-wide churn report."""

    segment: str = Field("Overall", description="Report segment label")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "segment": "Overall",
                "total_accounts": 10,
                "churned_accounts": 3,
                "churn_rate_pct": 30.0,
                "avg_lifetime_days_churned": 142.0,
                "avg_lifetime_days_active": 388.0,
                "total_mrr_lost": 600.0
            }
        }
    )


class SegmentChurn(ChurnSummary):
    """Schema for one (industry, plan tier) segment."""

    industry: Optional[str] = None
    plan_tier: Optional[str] = None


class ChurnReason(BaseModel):
    """Schema for one churn reason code."""

    reason_code: Optional[str] = None
    churn_count: int = Field(..., ge=0)
    pct_of_total_churn: float = Field(..., ge=0, le=100)
    avg_refund: Optional[float] = None
    unique_accounts: int = Field(..., ge=0)


class FeatureAdoption(BaseModel):
    """Schema for feature adoption of churned or active customers."""

    customer_status: str = Field(..., description="'Churned' or 'Active'")
    num_customers: int = Field(..., ge=0)
    avg_features_used: Optional[float] = None
    avg_total_usage: Optional[float] = None
    avg_usage_per_feature: Optional[float] = None


class EarlyEngagement(BaseModel):
    """Schema for first-month engagement of one industry and churn status."""

    industry: Optional[str] = None
    is_churned: bool
    customer_count: int = Field(..., ge=0)
    avg_days_active: Optional[float] = None
    avg_features_used: Optional[float] = None
    avg_total_usage: Optional[float] = None
    avg_support_tickets: Optional[float] = None


class ReportBundle(BaseModel):
    """Schema for every report computed against one snapshot."""

    as_of: date
    generated_at: datetime = Field(default_factory=datetime.now)
    overall: List[OverallChurnMetrics]
    segments: List[SegmentChurn]
    reasons: List[ChurnReason]
    feature_adoption: List[FeatureAdoption]
    early_engagement: List[EarlyEngagement]


class HealthResponse(BaseModel):
    """Schema for health check response."""

    status: str
    database_connected: bool
    table_counts: Dict[str, int]
    timestamp: datetime
