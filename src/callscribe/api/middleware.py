"""FastAPI middleware for request tracing and logging."""

import time
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Polled by probes and scrapers; logged at debug only
QUIET_PATHS = frozenset({"/health", "/metrics"})

WEBHOOK_PREFIX = "/plivo/"


class RequestTracingMiddleware(BaseHTTPMiddleware):
    """Bind a request id into the structlog context for every request.

    - Reuses an incoming X-Request-ID or generates a UUID4
    - Tags Plivo webhook deliveries with ``webhook=True``
    - Echoes the id in the X-Request-ID response header
    - Logs completion with status and duration
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        path = request.url.path

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=path,
            webhook=path.startswith(WEBHOOK_PREFIX),
        )
        log = logger.debug if path in QUIET_PATHS else logger.info

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.error(
                "Request failed",
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                exc_info=True,
            )
            raise
        finally:
            structlog.contextvars.clear_contextvars()

        log(
            "Request completed",
            request_id=request_id,
            method=request.method,
            path=path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
