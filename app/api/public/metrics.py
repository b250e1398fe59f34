"""
Prometheus metrics endpoint
"""

import logging
import secrets
from typing import Optional
from fastapi import APIRouter, HTTPException, status, Header, Depends
from fastapi.responses import Response

from app.infrastructure.settings import get_settings
from app.utils.metrics import get_metrics_output, CONTENT_TYPE_LATEST

logger = logging.getLogger(__name__)

router = APIRouter(tags=["metrics"])


async def verify_metrics_access(
    x_metrics_token: Optional[str] = Header(None, alias="X-Metrics-Token"),
) -> bool:
    """
    Verify access to metrics endpoint.

    Access is granted if:
    - METRICS_PUBLIC=true, OR
    - METRICS_TOKEN is set and matches X-Metrics-Token header

    Returns True if access is granted, raises HTTPException otherwise.
    """
    settings = get_settings()

    if settings.METRICS_PUBLIC:
        return True

    if settings.METRICS_TOKEN and x_metrics_token:
        if secrets.compare_digest(x_metrics_token, settings.METRICS_TOKEN):
            return True

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Access to metrics endpoint denied. Set METRICS_PUBLIC=true or provide a valid METRICS_TOKEN.",
    )


@router.get(
    "/metrics",
    summary="Prometheus metrics endpoint",
    description="Expose Prometheus metrics for observability. Protected by default (METRICS_PUBLIC=false).",
)
async def get_metrics(
    _: bool = Depends(verify_metrics_access),
) -> Response:
    """Prometheus exposition format (accrual counters, pass duration, ledger violations)"""
    try:
        metrics_output = get_metrics_output()
    except Exception as e:
        logger.error(f"Error generating metrics: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error generating metrics",
        )
    return Response(content=metrics_output, media_type=CONTENT_TYPE_LATEST)
