"""Request id + access log middleware.

Assigns each request an id (or keeps the caller's X-Request-ID), publishes it
through `request_context` so the response envelope and the data-access logs
carry it, echoes it back in the X-Request-ID header, and logs one line per
request.

Log format:
    INFO [GET] /api/v1/users/42 → 200 (3ms) req_a1b2c3d4e5f6
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from src.uc_common.request_context import REQUEST_ID_HEADER, set_request_id

logger = logging.getLogger("uc.request")


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        # Not reset afterwards: the server runs each request in its own task,
        # and the recovery handler outside this middleware still needs it.
        incoming = request.headers.get(REQUEST_ID_HEADER, "")[:64]
        request_id = set_request_id(incoming or None)

        start = time.perf_counter()
        try:
            response: Response = await call_next(request)
        except Exception:
            logger.error(
                "[%s] %s → unhandled error (%.0fms) %s",
                request.method,
                request.url.path,
                (time.perf_counter() - start) * 1000,
                request_id,
            )
            raise
        elapsed_ms = (time.perf_counter() - start) * 1000

        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            "[%s] %s → %d (%.0fms) %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
        )
        return response
