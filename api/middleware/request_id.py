"""
Request ID middleware.

Generates or forwards a trace id, binds it into structlog contextvars so
gateway logs carry it, and logs one access line per request.
"""
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

import structlog

from core.logging_config import get_logger


logger = get_logger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    HEADER_NAME = "X-Request-ID"
    SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(self.HEADER_NAME) or str(uuid.uuid4())
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        start_time = time.perf_counter()
        response = await call_next(request)
        response.headers[self.HEADER_NAME] = request_id

        if request.url.path not in self.SKIP_PATHS:
            logger.info(
                "request_finished",
                status_code=response.status_code,
                elapsed_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
        return response
