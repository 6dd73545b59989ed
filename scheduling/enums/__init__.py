"""Enumerations for the scheduling engine."""

from scheduling.enums.notification import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    AttemptOutcome,
    BoundaryKind,
    DeliveryErrorKind,
    DeliveryMethod,
    DigestFrequency,
    JobStatus,
    NotificationType,
    PreferenceFrequency,
    PreferenceSource,
    UrgencyLevel,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATUSES",
    "AttemptOutcome",
    "BoundaryKind",
    "DeliveryErrorKind",
    "DeliveryMethod",
    "DigestFrequency",
    "JobStatus",
    "NotificationType",
    "PreferenceFrequency",
    "PreferenceSource",
    "UrgencyLevel",
]
