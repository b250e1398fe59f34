"""
Accrual admin endpoints - Manual trigger of the daily accrual pass
"""

import logging
from typing import Optional
from fastapi import APIRouter, Body, Depends, Request

from app.infrastructure.database import get_session_factory
from app.schemas.accruals import AccrualRunRequest, AccrualRunResponse
from app.services.accrual_service import run_accrual_pass
from app.utils.trace_id import get_trace_id

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/accruals/run",
    response_model=AccrualRunResponse,
    summary="Run accrual pass",
    description=(
        "Run one accrual and settlement pass synchronously and return its summary. "
        "Idempotent per day: re-running never double-credits. "
        "503 ACCRUAL_RUN_FAILED when the pass could not run at all."
    ),
)
def run_accruals(
    request: Request,
    payload: Optional[AccrualRunRequest] = Body(default=None),
    session_factory=Depends(get_session_factory),
) -> AccrualRunResponse:
    """Trigger an accrual pass (AccrualRunError is mapped to 503 by the global handler)"""
    payload = payload or AccrualRunRequest()

    summary = run_accrual_pass(
        session_factory,
        as_of_date=payload.as_of_date,
        dry_run=payload.dry_run,
        trace_id=get_trace_id(request),
    )

    logger.info(
        "Accrual pass triggered via admin API",
        extra={'as_of_date': summary['as_of_date'], 'errors_count': summary['errors_count']},
    )

    return AccrualRunResponse(
        status="completed_with_errors" if summary['errors_count'] else "completed",
        **summary,
    )
