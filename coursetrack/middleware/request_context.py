"""Request context middleware: one id per request, carried into every log line.

Requests run concurrently on one event loop thread, so the id lives in a
ContextVar (per task), not a thread-local.  A log record factory copies
it onto every LogRecord created while the request is being handled,
whichever logger emits it.
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

_base_factory = logging.getLogRecordFactory()


def _record_with_request_id(*args, **kwargs) -> logging.LogRecord:
    record = _base_factory(*args, **kwargs)
    record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
    return record


_record_with_request_id.installed = True  # type: ignore[attr-defined]

# Installed once; a reloaded module must not wrap its own factory again.
if not getattr(_base_factory, "installed", False):
    logging.setLogRecordFactory(_record_with_request_id)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request id, time the request and log one summary line.

    A caller-supplied X-Request-ID is reused so ids can be followed across
    services; the id is echoed back on the response.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        token = request_id_var.set(req_id)
        start = time.monotonic()
        try:
            response = await call_next(request)
            duration_ms = round((time.monotonic() - start) * 1000, 1)
            logger.info(
                "%s %s -> %d (%.1fms)",
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
        finally:
            request_id_var.reset(token)
