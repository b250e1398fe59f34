"""
Admin API routes - INTERNAL ONLY (X-Admin-Token)
"""

from fastapi import APIRouter, Depends
from app.infrastructure.settings import get_settings
from app.auth.dependencies import require_admin_token
from app.api.admin.accruals import router as accruals_router
from app.api.admin.investments import router as investments_router
from app.api.admin.users import router as users_router

settings = get_settings()
router = APIRouter(
    prefix=settings.ADMIN_V1_PREFIX,
    tags=["admin-v1"],
    dependencies=[Depends(require_admin_token)],
)

# Register admin routers
router.include_router(accruals_router, tags=["admin-accruals"])
router.include_router(investments_router, tags=["admin-investments"])
router.include_router(users_router, tags=["admin-users"])
