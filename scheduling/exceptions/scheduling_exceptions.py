"""Custom exceptions for the scheduling engine."""

from typing import Any


class SchedulingError(Exception):
    """Base exception for scheduling engine errors."""

    def __init__(self, message: str):
        """Initialize scheduling error.

        Args:
            message: Error message
        """
        self.message = message
        super().__init__(message)


class ValidationError(SchedulingError):
    """Request or configuration rejected before anything is persisted (400)."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize validation error.

        Args:
            message: Error message
            details: Field-level error details, if any
        """
        self.details = details or {}
        super().__init__(message)

    @classmethod
    def from_pydantic(cls, error: Any, message: str) -> "ValidationError":
        """Build a ValidationError from a pydantic ValidationError.

        Field locations are flattened to dotted alias names, for example
        ``{"deliveryTime": "Input should be in a valid time format"}``. Errors
        raised by model validators are reported under ``"__root__"``.
        """
        details = {}
        for item in error.errors():
            field = ".".join(str(part) for part in item["loc"]) or "__root__"
            details[field] = item["msg"]
        return cls(message, details=details)


class RecipientNotFoundError(ValidationError):
    """Recipient does not exist (404).

    Subclasses ValidationError so callers rejecting bad enqueue requests
    handle unknown recipients the same way as inactive ones.
    """

    def __init__(self, recipient_id: Any):
        """Initialize recipient not found error.

        Args:
            recipient_id: ID of the recipient that was not found
        """
        self.recipient_id = recipient_id
        super().__init__(f"Recipient with ID {recipient_id} not found")


class JobNotFoundError(SchedulingError):
    """Notification job does not exist (404)."""

    def __init__(self, job_id: Any):
        """Initialize job not found error.

        Args:
            job_id: ID of the job that was not found
        """
        self.job_id = job_id
        super().__init__(f"Notification job {job_id} not found")


class ConflictError(SchedulingError):
    """Operation not allowed in the job's current state (409)."""

    def __init__(self, message: str, detail: str | None = None):
        """Initialize conflict error.

        Args:
            message: Error message
            detail: Additional details about the conflict
        """
        self.detail = detail
        super().__init__(message)


class DeliveryError(SchedulingError):
    """Base exception for transport failures."""

    retryable = False

    def __init__(
        self,
        message: str,
        delivery_method: str | None = None,
        status_code: int | None = None,
    ):
        """Initialize delivery error.

        Args:
            message: Error message
            delivery_method: Channel the failure happened on
            status_code: Provider HTTP status code if applicable
        """
        self.delivery_method = delivery_method
        self.status_code = status_code
        super().__init__(message)


class TransientDeliveryError(DeliveryError):
    """Timeout, connection failure or provider 5xx. Retried with backoff."""

    retryable = True


class PermanentDeliveryError(DeliveryError):
    """Invalid address or provider 4xx. The job fails immediately."""


class CacheStaleError(SchedulingError):
    """Cached preferences expired or were superseded by a newer version."""

    def __init__(self, key: str, reason: str):
        """Initialize cache stale error.

        Args:
            key: Cache key of the stale entry
            reason: Either "expired" or "version"
        """
        self.key = key
        self.reason = reason
        super().__init__(f"Preference cache entry {key} is stale ({reason})")
