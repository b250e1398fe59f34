"""
Trace ID utilities for request tracking
"""

import uuid
from typing import Optional
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from app.infrastructure.logging_config import trace_id_context

TRACE_HEADERS = ("X-Trace-ID", "X-Request-Id", "X-Correlation-Id")


def generate_trace_id() -> str:
    """Generate a new trace ID"""
    return str(uuid.uuid4())


class TraceIDMiddleware(BaseHTTPMiddleware):
    """
    Take the trace_id from the first known header (or generate one), expose it
    on request.state, in the logging context and in the X-Trace-ID response header.

    An admin-triggered accrual pass reuses it, so its audit metadata points
    back at the request.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        trace_id = next(
            (request.headers[name] for name in TRACE_HEADERS if request.headers.get(name)),
            None,
        ) or generate_trace_id()

        request.state.trace_id = trace_id
        token = trace_id_context.set(trace_id)
        try:
            response = await call_next(request)
        finally:
            trace_id_context.reset(token)

        response.headers["X-Trace-ID"] = trace_id
        return response


def get_trace_id(request: Request) -> Optional[str]:
    """Get trace_id from request state"""
    return getattr(request.state, "trace_id", None)
