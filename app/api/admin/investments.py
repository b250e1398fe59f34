"""
Investment admin endpoints
"""

from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.infrastructure.database import get_db
from app.core.investments.models import Investment
from app.schemas.investments import ReturnsHistoryResponse, DailyReturnItem
from app.services.investment_helpers import get_returns_history, summarize_returns

router = APIRouter()


@router.get(
    "/investments/{investment_id}/returns",
    response_model=ReturnsHistoryResponse,
    summary="Investment returns history",
    description="Daily return records of one investment, oldest first.",
)
def get_investment_returns(
    investment_id: UUID,
    db: Session = Depends(get_db),
) -> ReturnsHistoryResponse:
    investment = db.query(Investment).filter(Investment.id == investment_id).first()
    if not investment:
        raise HTTPException(status_code=404, detail="Investment not found")

    records = get_returns_history(db, investment_id)
    totals = summarize_returns(records)

    return ReturnsHistoryResponse(
        investment_id=str(investment.id),
        status=investment.status,
        days_credited=totals['days_credited'],
        total_returns=str(totals['total_returns']),
        items=[
            DailyReturnItem(
                date=record.date.isoformat(),
                daily_return=str(record.daily_return),
                cumulative_return=str(record.cumulative_return),
            )
            for record in records
        ],
    )
