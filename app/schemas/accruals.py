"""
Accrual run API request/response schemas
"""

from datetime import date
from typing import List, Optional
from pydantic import BaseModel, Field


class AccrualRunRequest(BaseModel):
    """Request schema for a manually triggered accrual pass (all fields optional)"""
    as_of_date: Optional[date] = Field(None, description="Accrual day (default: today UTC)")
    dry_run: bool = Field(default=False, description="Roll back every unit instead of committing")

    class Config:
        json_schema_extra = {
            "example": {
                "as_of_date": "2025-12-18",
                "dry_run": False,
            }
        }


class AccrualErrorItem(BaseModel):
    """One per-investment failure"""
    investment_id: str = Field(..., description="Investment UUID")
    error: str = Field(..., description="Error type and message")


class AccrualRunResponse(BaseModel):
    """Run summary of an accrual pass"""
    status: str = Field(..., description="completed or completed_with_errors")
    trace_id: str = Field(..., description="Trace ID of the pass (also in audit metadata)")
    as_of_date: str = Field(..., description="Accrual day (ISO 8601)")
    now: str = Field(..., description="Instant used for maturity checks (ISO 8601)")
    dry_run: bool
    active_found: int = Field(..., description="Active investments in the snapshot")
    processed: int = Field(..., description="Investments credited a daily return")
    settled: int = Field(..., description="Matured investments settled")
    skipped: int = Field(..., description="Already processed today or no longer active")
    not_started: int = Field(..., description="Left untouched by cancellation or timeout")
    accrued_amount: str = Field(..., description="Total daily returns credited")
    settled_amount: str = Field(..., description="Total credited to available balances by settlement")
    errors_count: int
    errors: List[AccrualErrorItem] = Field(default_factory=list)
    cancelled: bool
    timed_out: bool
    duration_seconds: float
