"""Correlation ID middleware for request tracking."""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware

from compose_stack.lib.logging_config import log_with_context

CORRELATION_HEADER = "X-Correlation-ID"

logger = logging.getLogger(__name__)


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Attach a correlation ID to every request and response.

    An incoming X-Correlation-ID header is reused; otherwise a new UUID
    is generated. The ID is stored on request.state, tagged on the
    current span and echoed in the response headers.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        span = trace.get_current_span()
        if span.is_recording():
            span.set_attribute("correlation_id", correlation_id)

        started = time.perf_counter()
        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id

        log_with_context(
            logger,
            "debug",
            f"{request.method} {request.url.path} -> {response.status_code}",
            correlation_id=correlation_id,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return response
