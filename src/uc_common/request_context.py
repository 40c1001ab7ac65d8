"""Per-request correlation id.

RequestLogMiddleware sets the id once per request; ApiResponse envelopes and
every log record emitted while serving that request pick it up from here.
"""

import logging
import uuid
from contextvars import ContextVar

REQUEST_ID_HEADER = "X-Request-ID"

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


def set_request_id(request_id: str | None = None) -> str:
    if request_id is None:
        request_id = new_request_id()
    request_id_var.set(request_id)
    return request_id


def current_request_id() -> str:
    """The id of the request being served, or a fresh one outside a request."""
    return request_id_var.get() or new_request_id()


class RequestIdFilter(logging.Filter):
    """Stamp `record.request_id` so formatters can use %(request_id)s."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True
