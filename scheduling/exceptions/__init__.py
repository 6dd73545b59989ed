"""Exception handling utilities for the scheduling engine."""

from scheduling.exceptions.handlers import custom_exception_handler
from scheduling.exceptions.scheduling_exceptions import (
    CacheStaleError,
    ConflictError,
    DeliveryError,
    JobNotFoundError,
    PermanentDeliveryError,
    RecipientNotFoundError,
    SchedulingError,
    TransientDeliveryError,
    ValidationError,
)

__all__ = [
    "CacheStaleError",
    "ConflictError",
    "DeliveryError",
    "JobNotFoundError",
    "PermanentDeliveryError",
    "RecipientNotFoundError",
    "SchedulingError",
    "TransientDeliveryError",
    "ValidationError",
    "custom_exception_handler",
]
