"""
Authentication dependencies for FastAPI

End-user authentication lives in a separate service. The only guard here is
the static operator token protecting /admin/v1/*.
"""

import logging
import secrets
from typing import Optional
from fastapi import HTTPException, status, Header

from app.infrastructure.settings import get_settings

logger = logging.getLogger(__name__)


async def require_admin_token(
    x_admin_token: Optional[str] = Header(None, alias="X-Admin-Token"),
) -> bool:
    """
    Require a valid X-Admin-Token header.

    - ADMIN_API_TOKEN unset: admin surface disabled (403)
    - header missing: 401
    - header wrong: 403
    """
    settings = get_settings()

    if not settings.ADMIN_API_TOKEN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": {
                    "code": "ADMIN_API_DISABLED",
                    "message": "Admin API is disabled. Set ADMIN_API_TOKEN to enable it.",
                }
            },
        )

    if not x_admin_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": {
                    "code": "ADMIN_TOKEN_MISSING",
                    "message": "X-Admin-Token header missing",
                }
            },
        )

    if not secrets.compare_digest(x_admin_token, settings.ADMIN_API_TOKEN):
        logger.warning("Rejected admin request with invalid token")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": {
                    "code": "ADMIN_TOKEN_INVALID",
                    "message": "Invalid admin token",
                }
            },
        )

    return True
