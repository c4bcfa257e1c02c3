"""HTTP middleware for request correlation, metrics and access logging.

``RequestIdMiddleware`` must be the outermost layer so that every log line
emitted further in (including the access log) carries the request id.
``AccessLogMiddleware`` times each request once and feeds both the
Prometheus HTTP metrics and the ``request_completed`` log event.
"""

from __future__ import annotations

import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from .logging import get_logger, request_id_ctx
from .metrics import (
    HTTP_REQUEST_DURATION_SECONDS,
    HTTP_REQUESTS_IN_FLIGHT,
    HTTP_REQUESTS_TOTAL,
)

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Client-supplied ids are echoed into logs; accept only a conservative shape.
_REQUEST_ID_SHAPE = re.compile(r"^[A-Za-z0-9-]{8,128}$")

# Doc ids and blob keys would make one label series per document.
_ROUTE_TEMPLATES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^/files/[^/]+/rename$"), "/files/{doc_id}/rename"),
    (re.compile(r"^/files/[^/]+$"), "/files/{doc_id}"),
    (re.compile(r"^/uploads/.+$"), "/uploads/{blob}"),
)


def metric_path(path: str) -> str:
    """Map a concrete request path to its route template."""
    for pattern, template in _ROUTE_TEMPLATES:
        if pattern.match(path):
            return template
    return path


def _request_id_for(request: Request) -> str:
    supplied = request.headers.get(REQUEST_ID_HEADER, "")
    if _REQUEST_ID_SHAPE.match(supplied):
        return supplied
    return uuid.uuid4().hex


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a request id for the duration of the request and echo it back."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        rid = _request_id_for(request)
        request.state.request_id = rid
        reset_token = request_id_ctx.set(rid)
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(reset_token)
        response.headers[REQUEST_ID_HEADER] = rid
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Record HTTP metrics and log one ``request_completed`` line per request.

    Unhandled exceptions are counted as 500 and re-raised.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        method = request.method
        route = metric_path(request.url.path)
        status = 500

        HTTP_REQUESTS_IN_FLIGHT.inc()
        started = time.perf_counter()
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            elapsed = time.perf_counter() - started
            HTTP_REQUESTS_IN_FLIGHT.dec()
            HTTP_REQUEST_DURATION_SECONDS.labels(method=method, path=route).observe(elapsed)
            HTTP_REQUESTS_TOTAL.labels(method=method, path=route, status=str(status)).inc()
            logger.info(
                "request_completed",
                method=method,
                path=request.url.path,
                status=status,
                duration_ms=round(elapsed * 1000, 2),
            )
