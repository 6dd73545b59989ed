"""Request ID middleware for log correlation."""

import time
import uuid
from collections.abc import Callable

from django.http import HttpRequest, HttpResponse

import structlog

from scheduling.constants import REQUEST_ID_HEADER
from scheduling.logging.context import clear_request_id, set_request_id

logger = structlog.get_logger(__name__)


class RequestIDMiddleware:
    """Attach a request ID to every API call.

    An incoming X-Request-ID header is reused, otherwise a UUID is generated.
    The ID is stored in thread-local storage so every log line emitted while
    handling the request carries it, and it is echoed back in the response.
    """

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        set_request_id(request_id)
        request.request_id = request_id  # type: ignore[attr-defined]
        started = time.perf_counter()

        try:
            response = self.get_response(request)
            response[REQUEST_ID_HEADER] = request_id
            logger.debug(
                "request_completed",
                method=request.method,
                path=request.path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            return response
        finally:
            clear_request_id()
