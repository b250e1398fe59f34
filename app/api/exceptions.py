"""
Global exception handlers

Every error response has the shape {"error": {"code", "message", "trace_id"}}.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.services.accrual_service import AccrualRunError
from app.utils.trace_id import get_trace_id

logger = logging.getLogger(__name__)


def error_body(code: str, message: str, trace_id: Optional[str], **extra: Any) -> Dict[str, Any]:
    """Build the standard error envelope"""
    error: Dict[str, Any] = {"code": code, "message": message, "trace_id": trace_id}
    error.update(extra)
    return {"error": error}


def _jsonable(obj: Any) -> Any:
    """Recursively stringify values pydantic error details may carry"""
    if isinstance(obj, (Decimal, Exception)):
        return str(obj)
    if isinstance(obj, dict):
        return {key: _jsonable(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_jsonable(item) for item in obj]
    return obj


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions"""
    trace_id = get_trace_id(request)

    # Routes may raise with a ready-made {"error": {...}} detail to keep a custom code
    if isinstance(exc.detail, dict) and isinstance(exc.detail.get("error"), dict):
        content = {"error": dict(exc.detail["error"])}
        content["error"].setdefault("trace_id", trace_id)
    else:
        content = error_body(
            f"HTTP_{exc.status_code}",
            exc.detail if isinstance(exc.detail, str) else str(exc.detail),
            trace_id,
        )

    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation exceptions"""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_body(
            "VALIDATION_ERROR",
            "Request validation failed",
            get_trace_id(request),
            details=_jsonable(exc.errors()),
        ),
    )


async def accrual_run_error_handler(request: Request, exc: AccrualRunError) -> JSONResponse:
    """An accrual pass that could not run at all: 503 so callers retry later"""
    trace_id = get_trace_id(request)
    logger.error("Accrual pass did not run", extra={"error": str(exc)})
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=error_body("ACCRUAL_RUN_FAILED", str(exc), trace_id),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions (details are logged, not returned)"""
    trace_id = get_trace_id(request)
    logger.exception("Unhandled exception", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("INTERNAL_ERROR", "An internal error occurred", trace_id),
    )
