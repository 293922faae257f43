"""Request context middleware: request IDs, timing, and tenant log context.

Handlers for many requests interleave on one event loop thread, so the
per-request values live in ContextVars rather than thread-locals.  A
logging filter copies them onto every LogRecord:

  request_id: from the X-Request-ID header, or a generated UUID
  org_id:     set by the tenant guard once x-org-id has been verified
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
org_id_var: ContextVar[str] = ContextVar("org_id", default="-")


class _RequestContextFilter(logging.Filter):
    """Attach request_id and org_id from the ContextVars to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
        record.org_id = org_id_var.get("-")  # type: ignore[attr-defined]
        return True


# Handlers (not loggers) so records propagated from child loggers are
# covered too.  Guarded against duplicate installation on reload.
def install_context_filter() -> None:
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, _RequestContextFilter) for f in handler.filters):
            handler.addFilter(_RequestContextFilter())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request ID, time the request, and log a summary line.

    The X-Request-ID header is echoed on the response for client-side
    correlation.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_id_var.set(req_id)
        org_id_var.set("-")

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        logger.info(
            "%s %s → %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        response.headers["X-Request-ID"] = req_id
        return response
