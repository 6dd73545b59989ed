"""Schemas for notification jobs, their delivery and their audit trail."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from scheduling.enums import (
    AttemptOutcome,
    DeliveryErrorKind,
    DeliveryMethod,
    JobStatus,
    NotificationType,
    UrgencyLevel,
)
from scheduling.schemas.base_schema_model import BaseSchemaModel


class EnqueueRequest(BaseSchemaModel):
    """Request to queue a notification for one recipient.

    ``delivery_method`` is optional: when omitted the first deliverable
    channel from the recipient's effective preferences is used.
    ``scheduled_for`` is only set by internal callers that already resolved
    the delivery instant (the digest sweep).
    """

    recipient_id: UUID
    group_id: UUID | None = None
    update_id: UUID | None = None
    notification_type: NotificationType
    urgency_level: UrgencyLevel = UrgencyLevel.NORMAL
    delivery_method: DeliveryMethod | None = None
    content: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)
    max_retries: int | None = Field(default=None, ge=1, le=10)
    delay_minutes: int = Field(default=0, ge=0)
    scheduled_for: datetime | None = Field(default=None, exclude=True)


class RescheduleRequest(BaseSchemaModel):
    """Move a pending job to a new delivery instant."""

    scheduled_for: datetime


class NotificationJobRecord(BaseSchemaModel):
    """A notification job as stored by a job repository."""

    id: UUID
    recipient_id: UUID
    group_id: UUID
    update_id: UUID | None = None
    notification_type: NotificationType
    urgency_level: UrgencyLevel = UrgencyLevel.NORMAL
    delivery_method: DeliveryMethod
    content: dict[str, Any] = Field(default_factory=dict)
    status: JobStatus = JobStatus.PENDING
    scheduled_for: datetime
    retry_count: int = 0
    max_retries: int = 3
    processed_at: datetime | None = None
    failure_reason: str | None = None
    message_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    claimed_at: datetime | None = None
    claimed_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DeliveryRequest(BaseSchemaModel):
    """Everything a transport needs to deliver one job."""

    job_id: UUID
    recipient_id: UUID
    recipient_name: str
    address: str
    delivery_method: DeliveryMethod
    notification_type: NotificationType
    urgency_level: UrgencyLevel
    content: dict[str, Any] = Field(default_factory=dict)


class DeliveryAttemptRecord(BaseSchemaModel):
    """One row of the delivery audit log."""

    job_id: UUID
    recipient_id: UUID
    group_id: UUID
    delivery_method: DeliveryMethod
    outcome: AttemptOutcome
    provider_message_id: str | None = None
    error_kind: DeliveryErrorKind | None = None
    error_message: str | None = None
    duration_ms: int | None = None
    created_at: datetime | None = None


class DispatchSummary(BaseSchemaModel):
    """Counts produced by one dispatch sweep."""

    due: int = 0
    sent: int = 0
    retried: int = 0
    failed: int = 0
    skipped: int = 0
    deferred: int = 0
    conflicts: int = 0
    errors: int = 0
