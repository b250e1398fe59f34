"""
Request logging middleware for structured logs
"""

import time
import logging
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log one structured line per HTTP request: path, method, status_code,
    duration_ms (trace_id comes from the context set by TraceIDMiddleware).
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.monotonic()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            log_data = {
                "path": request.url.path,
                "method": request.method,
                "status_code": status_code,
                "duration_ms": round((time.monotonic() - start_time) * 1000, 2),
            }
            if status_code >= 500:
                logger.error("Request failed", extra=log_data)
            elif status_code >= 400:
                logger.warning("Request client error", extra=log_data)
            else:
                logger.info("Request completed", extra=log_data)
