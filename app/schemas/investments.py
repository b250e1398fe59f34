"""
Investment API response schemas
"""

from typing import List, Optional
from pydantic import BaseModel, Field


class InvestmentListItem(BaseModel):
    """Investment (allocation) list item"""
    id: str = Field(..., description="Investment UUID")
    plan_id: str = Field(..., description="Investment plan UUID")
    initial_amount: str
    locked_amount: str
    accumulated_returns: str
    daily_return_rate: str = Field(..., description="Frozen daily rate in percent")
    start_date: str = Field(..., description="ISO 8601 timestamp")
    end_date: str = Field(..., description="Maturity instant (ISO 8601)")
    status: str = Field(..., description="active or completed")
    completed_at: Optional[str] = Field(None, description="Settlement instant (ISO 8601)")


class DailyReturnItem(BaseModel):
    """One day's credited return"""
    date: str = Field(..., description="Accrual day (ISO 8601)")
    daily_return: str
    cumulative_return: str = Field(..., description="accumulated_returns right after this credit")


class ReturnsHistoryResponse(BaseModel):
    """Returns history of one investment"""
    investment_id: str
    status: str
    days_credited: int
    total_returns: str
    items: List[DailyReturnItem] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "investment_id": "123e4567-e89b-12d3-a456-426614174000",
                "status": "active",
                "days_credited": 1,
                "total_returns": "15.00000000",
                "items": [
                    {"date": "2025-12-18", "daily_return": "15.00000000", "cumulative_return": "15.00000000"},
                ],
            }
        }
