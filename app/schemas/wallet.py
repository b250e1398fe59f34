"""
Wallet API response schemas
"""

from pydantic import BaseModel, Field


class WalletBalanceResponse(BaseModel):
    """Wallet balance response schema"""
    user_id: str = Field(..., description="Wallet owner UUID")
    total_balance: str = Field(..., description="Total wallet balance (sum of all buckets)")
    available_balance: str = Field(..., description="Spendable funds")
    locked_balance: str = Field(..., description="Principal of active investments")
    returns_balance: str = Field(..., description="Daily returns credited to active investments, released at settlement")

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "123e4567-e89b-12d3-a456-426614174000",
                "total_balance": "1515.00000000",
                "available_balance": "500.00000000",
                "locked_balance": "1000.00000000",
                "returns_balance": "15.00000000",
            }
        }
