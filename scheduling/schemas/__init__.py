"""Pydantic schemas exchanged between the scheduling engine's layers."""

from scheduling.schemas.base_schema_model import BaseSchemaModel
from scheduling.schemas.digest_schedule import (
    DigestScheduleConfig,
    DigestScheduleRecord,
    DigestScheduleRequest,
)
from scheduling.schemas.metrics import FailedJobSummary, JobMetrics
from scheduling.schemas.notification_job import (
    DeliveryAttemptRecord,
    DeliveryRequest,
    DispatchSummary,
    EnqueueRequest,
    NotificationJobRecord,
    RescheduleRequest,
)
from scheduling.schemas.preferences import PreferenceCacheEntry, RecipientProfile
from scheduling.schemas.quiet_hours import QuietHours, QuietHoursStatus

__all__ = [
    "BaseSchemaModel",
    "DeliveryAttemptRecord",
    "DeliveryRequest",
    "DigestScheduleConfig",
    "DigestScheduleRecord",
    "DigestScheduleRequest",
    "DispatchSummary",
    "EnqueueRequest",
    "FailedJobSummary",
    "JobMetrics",
    "NotificationJobRecord",
    "PreferenceCacheEntry",
    "QuietHours",
    "QuietHoursStatus",
    "RecipientProfile",
    "RescheduleRequest",
]
