"""
Correlation ID middleware
=========================
Tags every request with an X-Correlation-ID so the log lines of one import
(parse, insert, local fallback) can be grouped, and echoes X-Tab-ID back when
the client sent one.
"""
from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)


class CorrelationMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        tab_id = request.headers.get("X-Tab-ID", "")

        request.state.correlation_id = correlation_id
        request.state.tab_id = tab_id

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        logger.info(
            "%s %s -> %s (%.1f ms) correlation_id=%s",
            request.method, request.url.path, response.status_code, elapsed_ms, correlation_id,
        )

        response.headers["X-Correlation-ID"] = correlation_id
        if tab_id:
            response.headers["X-Tab-ID"] = tab_id

        return response
