"""Custom structlog processors for correlation context and service metadata."""

import os
import threading

from django.conf import settings

from colorama import Fore, Style, init
from structlog.typing import EventDict, WrappedLogger

from scheduling.logging.context import get_request_id, get_worker_id


def add_correlation_context(
    _logger: WrappedLogger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Add the request ID and dispatch worker ID from thread-local context.

    HTTP requests get their ID from RequestIDMiddleware; dispatch loops and
    RQ jobs set a worker ID before each sweep.
    """
    request_id = get_request_id()
    if request_id:
        event_dict["request_id"] = request_id
    worker_id = get_worker_id()
    if worker_id:
        event_dict["worker_id"] = worker_id
    return event_dict


def add_service_context(
    _logger: WrappedLogger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service_name and environment to all log events."""
    event_dict["service_name"] = getattr(
        settings, "SERVICE_NAME", "notification-scheduler"
    )
    event_dict["environment"] = getattr(settings, "ENVIRONMENT", "development")
    return event_dict


def add_process_info(
    _logger: WrappedLogger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Add process and thread information to log events."""
    event_dict["process_id"] = os.getpid()
    event_dict["thread_id"] = threading.get_ident()
    return event_dict


_LEVEL_COLORS = {
    "DEBUG": Fore.CYAN,
    "INFO": Fore.GREEN,
    "WARNING": Fore.YELLOW,
    "ERROR": Fore.RED,
    "CRITICAL": Fore.RED + Style.BRIGHT,
}

_CONSOLE_HIDDEN_FIELDS = {
    "level",
    "timestamp",
    "request_id",
    "worker_id",
    "logger",
    "event",
    "process_id",
    "thread_id",
    "service_name",
    "environment",
}


def console_renderer(
    _logger: WrappedLogger, _method_name: str, event_dict: EventDict
) -> str:
    """Render log events as colored strings for console output.

    Format: [LEVEL] timestamp | correlation id | logger_name | event key=value...

    The correlation id is the request ID for API calls, the worker ID for
    dispatch sweeps.

    Args:
        _logger: The wrapped logger instance (unused, required by structlog interface).
        _method_name: The name of the method called on the logger (unused).
        event_dict: The event dictionary to be logged.

    Returns:
        A formatted, colored string for console output.
    """
    init(autoreset=True)

    level = event_dict.get("level", "INFO").upper()
    timestamp = event_dict.get("timestamp", "")
    correlation_id = (
        event_dict.get("request_id") or event_dict.get("worker_id") or "-"
    )
    logger_name = event_dict.get("logger", "root")
    message = event_dict.get("event", "")

    level_color = _LEVEL_COLORS.get(level, Fore.WHITE)

    formatted = (
        f"{level_color}[{level:<8}]{Style.RESET_ALL} "
        f"{Fore.WHITE}{timestamp}{Style.RESET_ALL} | "
        f"{Fore.MAGENTA}{correlation_id}{Style.RESET_ALL} | "
        f"{Fore.BLUE}{logger_name}{Style.RESET_ALL} | "
        f"{message}"
    )

    extra_fields = {
        k: v for k, v in event_dict.items() if k not in _CONSOLE_HIDDEN_FIELDS
    }
    if extra_fields:
        extra_str = " ".join(f"{k}={v}" for k, v in extra_fields.items())
        formatted += f" {Fore.YELLOW}{extra_str}{Style.RESET_ALL}"

    return formatted
