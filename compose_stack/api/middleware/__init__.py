"""API middleware components."""

from compose_stack.api.middleware.correlation import CORRELATION_HEADER, CorrelationMiddleware

__all__ = ["CORRELATION_HEADER", "CorrelationMiddleware"]
