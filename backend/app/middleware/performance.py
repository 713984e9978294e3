# backend/app/middleware/performance.py
"""
Request correlation and timing middleware.

Adds:
- X-Request-ID (taken from the caller or generated), also bound to the
  logging context for the duration of the request
- X-Response-Time-MS
- A warning log for slow requests
"""

import logging
import time
from typing import Callable
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ..core.request_context import bound_request_id

logger = logging.getLogger(__name__)

SLOW_REQUEST_MS = 500


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Attach a request id and measure request duration."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.time()

        with bound_request_id(request_id):
            response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time-MS"] = str(int(duration_ms))

        if duration_ms > SLOW_REQUEST_MS:
            logger.warning(
                "Slow request",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "duration_ms": round(duration_ms, 1),
                    "status_code": response.status_code,
                },
            )
        return response
