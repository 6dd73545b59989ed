"""Logging utilities for the scheduling engine."""

from scheduling.logging.config import setup_logging
from scheduling.logging.context import (
    clear_request_id,
    clear_worker_id,
    get_request_id,
    get_worker_id,
    set_request_id,
    set_worker_id,
)

__all__ = [
    "clear_request_id",
    "clear_worker_id",
    "get_request_id",
    "get_worker_id",
    "set_request_id",
    "set_worker_id",
    "setup_logging",
]
