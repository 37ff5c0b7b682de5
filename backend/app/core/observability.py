"""
Observability Middleware.

Adds correlation IDs and structured logging context to requests. The
correlation id is bound to the request's async context so that every
``livestock.*`` log line written while handling it carries the same id.
"""

import contextvars
import logging
import time
import uuid
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# Configure structured logger
logger = logging.getLogger("livestock.http")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(correlation_id)s] %(message)s"

_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "_correlation_id", default=None
)


def get_correlation_id() -> Optional[str]:
    """Correlation id of the request being handled, or None outside a request."""
    return _correlation_id.get()


class CorrelationIdFilter(logging.Filter):
    """Stamp each record with the current correlation id ("-" when there is none)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "-"
        return True


def configure_logging(level: str = "INFO"):
    """Install the root handler format and the correlation id filter."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, CorrelationIdFilter) for f in handler.filters):
            handler.addFilter(CorrelationIdFilter())


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        # 1. Generate or extract Correlation ID
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        token = _correlation_id.set(correlation_id)

        try:
            # 2. Time the request
            start_time = time.perf_counter()
            response = await call_next(request)
            process_time = (time.perf_counter() - start_time) * 1000  # ms

            # 3. Add Headers to Response
            response.headers["X-Correlation-ID"] = correlation_id
            response.headers["X-Process-Time"] = str(round(process_time, 2))

            # 4. Structured Log
            log_data = {
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(process_time, 2),
                "ip": request.client.host if request.client else "unknown"
            }

            if response.status_code >= 500:
                logger.error("Request Failed", extra=log_data)
            elif response.status_code >= 400:
                logger.warning("Request Error", extra=log_data)
            else:
                logger.info("Request API", extra=log_data)

            return response
        finally:
            _correlation_id.reset(token)
