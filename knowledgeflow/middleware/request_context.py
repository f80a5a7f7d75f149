"""Request ID propagation and per-request access logging.

The ID is stored in ``request_id_var`` for the duration of the request;
the handler filter installed by setup_logging copies it onto every
record, which is how a warning from deep inside the enrollment services
ends up tagged with the request that triggered it.  The enrolled-courses
view spawns its per-course reads as tasks, and tasks copy the current
context when created, so their log lines carry the same ID.
"""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from knowledgeflow.core.logging import request_id_var

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request ID, time the request, log one summary line.

    A client-supplied X-Request-ID is reused so traces line up with the
    caller's own logs; otherwise a UUID4 is generated.  The ID is echoed
    back on the response.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        token = request_id_var.set(req_id)

        start = time.monotonic()
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        logger.info(
            "%s %s -> %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={
                "request_id": req_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        response.headers[REQUEST_ID_HEADER] = req_id
        return response
