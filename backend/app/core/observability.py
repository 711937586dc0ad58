"""
Request observability.

Every request gets a correlation id (taken from X-Correlation-ID when the
caller sends one) that is echoed back, stored on request.state for audit
entries, and attached to one structured access log line.
"""

import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("animal_transport.access")

CORRELATION_HEADER = "X-Correlation-ID"
QUIET_PATHS = {"/health", "/"}


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
        request.state.correlation_id = correlation_id
        started = time.perf_counter()

        log_data = {
            "correlation_id": correlation_id,
            "method": request.method,
            "path": request.url.path,
            "client": request.client.host if request.client else "unknown",
        }

        try:
            response = await call_next(request)
        except Exception:
            log_data["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
            logger.exception("Unhandled error", extra=log_data)
            raise

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        response.headers[CORRELATION_HEADER] = correlation_id
        response.headers["X-Process-Time"] = str(duration_ms)

        log_data["status_code"] = response.status_code
        log_data["duration_ms"] = duration_ms

        if response.status_code >= 500:
            logger.error("%s %s failed", request.method, request.url.path, extra=log_data)
        elif response.status_code >= 400:
            logger.warning("%s %s rejected", request.method, request.url.path, extra=log_data)
        elif request.url.path in QUIET_PATHS:
            logger.debug("%s %s", request.method, request.url.path, extra=log_data)
        else:
            logger.info("%s %s", request.method, request.url.path, extra=log_data)

        return response
