"""Thread-local correlation context for HTTP requests and dispatch workers."""

import threading

_correlation_context = threading.local()


def set_request_id(request_id: str) -> None:
    """Store the request ID in thread-local storage.

    Args:
        request_id: The unique request identifier to store.
    """
    _correlation_context.request_id = request_id


def get_request_id() -> str | None:
    """Retrieve the request ID from thread-local storage.

    Returns:
        The current request ID, or None if not set.
    """
    return getattr(_correlation_context, "request_id", None)


def clear_request_id() -> None:
    """Clear the request ID once the request has been handled."""
    if hasattr(_correlation_context, "request_id"):
        delattr(_correlation_context, "request_id")


def set_worker_id(worker_id: str) -> None:
    """Tag every log line emitted by this thread with a dispatch worker id."""
    _correlation_context.worker_id = worker_id


def get_worker_id() -> str | None:
    return getattr(_correlation_context, "worker_id", None)


def clear_worker_id() -> None:
    if hasattr(_correlation_context, "worker_id"):
        delattr(_correlation_context, "worker_id")
