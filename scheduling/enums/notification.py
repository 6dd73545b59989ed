"""Notification job enumerations.

This module contains enums for job types, urgency levels, delivery channels,
job statuses and recipient frequency preferences used throughout the
scheduling engine.
"""

from enum import Enum


class NotificationType(str, Enum):
    """Kind of notification job.

    Digest jobs carry compiled content for a batch of updates, milestone jobs
    announce a highlighted update, immediate jobs deliver a single update.
    """

    IMMEDIATE = "immediate"
    DIGEST = "digest"
    MILESTONE = "milestone"


class UrgencyLevel(str, Enum):
    """Urgency of a notification.

    Urgent jobs bypass quiet hours and, when the recipient preserves urgent
    notifications, a mute.
    """

    NORMAL = "normal"
    URGENT = "urgent"
    LOW = "low"


class DeliveryMethod(str, Enum):
    """Channels a job can be delivered through."""

    EMAIL = "email"
    SMS = "sms"
    WHATSAPP = "whatsapp"
    PUSH = "push"


class JobStatus(str, Enum):
    """Notification job lifecycle states.

    pending -> processing -> sent | failed | skipped
    processing -> pending (transient retry)
    pending -> cancelled
    """

    PENDING = "pending"
    PROCESSING = "processing"
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {JobStatus.SENT, JobStatus.FAILED, JobStatus.SKIPPED, JobStatus.CANCELLED}
)


class DigestFrequency(str, Enum):
    """Cadence of a digest schedule."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class PreferenceFrequency(str, Enum):
    """How often a recipient wants to hear about updates."""

    EVERY_UPDATE = "every_update"
    DAILY_DIGEST = "daily_digest"
    WEEKLY_DIGEST = "weekly_digest"
    MILESTONES_ONLY = "milestones_only"


class PreferenceSource(str, Enum):
    """Where a set of effective preferences came from."""

    MEMBER_OVERRIDE = "member_override"
    GROUP_DEFAULT = "group_default"
    SYSTEM_DEFAULT = "system_default"


class BoundaryKind(str, Enum):
    """Direction of a quiet-hours boundary."""

    STARTS = "starts"
    ENDS = "ends"


class AttemptOutcome(str, Enum):
    """Outcome recorded for each delivery attempt."""

    DELIVERED = "delivered"
    FAILED = "failed"
    SKIPPED = "skipped"


class DeliveryErrorKind(str, Enum):
    """Classification of a failed delivery attempt."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"


# Allowed (expected, new) status pairs for a job transition.
ALLOWED_TRANSITIONS = frozenset(
    {
        (JobStatus.PENDING, JobStatus.PROCESSING),
        (JobStatus.PENDING, JobStatus.CANCELLED),
        (JobStatus.PROCESSING, JobStatus.SENT),
        (JobStatus.PROCESSING, JobStatus.FAILED),
        (JobStatus.PROCESSING, JobStatus.SKIPPED),
        (JobStatus.PROCESSING, JobStatus.PENDING),
    }
)
