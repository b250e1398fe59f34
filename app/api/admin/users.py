"""
Users admin endpoints - Wallet and investments of one user
"""

from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.infrastructure.database import get_db
from app.core.users.models import User
from app.core.investments.models import InvestmentStatus
from app.schemas.wallet import WalletBalanceResponse
from app.schemas.investments import InvestmentListItem
from app.services.wallet_helpers import get_wallet_balances
from app.services.investment_helpers import list_investments_for_user

router = APIRouter()


def _get_user_or_404(db: Session, user_id: UUID) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


@router.get(
    "/users/{user_id}/wallet",
    response_model=WalletBalanceResponse,
    summary="User wallet balances",
    description="Bucket balances of a user's wallet (zeros if the wallet does not exist yet).",
)
def get_user_wallet(
    user_id: UUID,
    db: Session = Depends(get_db),
) -> WalletBalanceResponse:
    _get_user_or_404(db, user_id)
    balances = get_wallet_balances(db, user_id)
    return WalletBalanceResponse(
        user_id=str(user_id),
        **{bucket: str(amount) for bucket, amount in balances.items()},
    )


@router.get(
    "/users/{user_id}/investments",
    response_model=List[InvestmentListItem],
    summary="User investments",
    description="A user's investments, newest first. Optional status filter (active, completed).",
)
def list_user_investments(
    user_id: UUID,
    status: Optional[InvestmentStatus] = Query(default=None),
    db: Session = Depends(get_db),
) -> List[InvestmentListItem]:
    _get_user_or_404(db, user_id)
    investments = list_investments_for_user(db, user_id, status=status)
    return [
        InvestmentListItem(
            id=str(investment.id),
            plan_id=str(investment.plan_id),
            initial_amount=str(investment.initial_amount),
            locked_amount=str(investment.locked_amount),
            accumulated_returns=str(investment.accumulated_returns),
            daily_return_rate=str(investment.daily_return_rate),
            start_date=investment.start_date.isoformat(),
            end_date=investment.end_date.isoformat(),
            status=investment.status,
            completed_at=_iso(investment.completed_at),
        )
        for investment in investments
    ]
