"""
FastAPI application entry point
"""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.infrastructure.settings import get_settings
from app.infrastructure.logging_config import setup_logging
from app.api.exceptions import (
    http_exception_handler,
    validation_exception_handler,
    accrual_run_error_handler,
    general_exception_handler,
)
from app.api.public.health import router as health_router
from app.api.public.metrics import router as metrics_router
from app.api.admin import router as admin_router
from app.services.accrual_service import AccrualRunError
from app.utils.trace_id import TraceIDMiddleware
from app.utils.request_logging import RequestLoggingMiddleware

# Get settings
settings = get_settings()

# Setup logging
setup_logging(settings.LOG_LEVEL)

# Create FastAPI app
app = FastAPI(
    title="Bot Returns Core API",
    description="Daily return accrual and settlement engine for bot investments",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Add custom middlewares (order matters - last added is outermost)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(TraceIDMiddleware)

# Register exception handlers
app.add_exception_handler(AccrualRunError, accrual_run_error_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

# Register routers
app.include_router(health_router)
app.include_router(metrics_router)
app.include_router(admin_router)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": "Bot Returns Core API",
        "version": "1.0.0",
        "status": "running",
    }
