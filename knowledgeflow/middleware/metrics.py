"""Prometheus instrumentation for every HTTP request.

The endpoint label is the matched route template (``/api/users/{username}/
enrolled-courses``), not the raw URL, so one series covers every learner
instead of one series per username.  Requests that match no route are
grouped under a single label.
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from knowledgeflow.core.metrics import ACTIVE_REQUESTS, REQUEST_COUNT, REQUEST_DURATION

UNMATCHED_ENDPOINT = "<unmatched>"


def endpoint_label(request: Request) -> str:
    # The router stores the matched route in the shared scope.
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path if path else UNMATCHED_ENDPOINT


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Scrapes are not traffic.
        if request.url.path == "/metrics":
            return await call_next(request)

        ACTIVE_REQUESTS.inc()
        start = time.monotonic()
        status_code = "500"

        try:
            response = await call_next(request)
            status_code = str(response.status_code)
        finally:
            duration = time.monotonic() - start
            ACTIVE_REQUESTS.dec()
            endpoint = endpoint_label(request)
            REQUEST_COUNT.labels(
                method=request.method, endpoint=endpoint, status_code=status_code
            ).inc()
            REQUEST_DURATION.labels(method=request.method, endpoint=endpoint).observe(
                duration
            )

        return response
