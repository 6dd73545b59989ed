"""NotificationJob model: one queued delivery of content to one recipient."""

import uuid
from typing import ClassVar

from django.db import models

from scheduling.enums import (
    DeliveryMethod,
    JobStatus,
    NotificationType,
    UrgencyLevel,
)


def _choices(enum_cls) -> list[tuple[str, str]]:
    return [(member.value, member.value) for member in enum_cls]


class NotificationJob(models.Model):
    """A queued notification and its delivery state.

    Rows are created by enqueue, mutated only through the job repository's
    status compare-and-swap, and never deleted.

    Attributes:
        id: Unique identifier for the job.
        recipient: Recipient the job is delivered to.
        group: Group the triggering update was shared with.
        update_id: Update that triggered the job (null for digests).
        notification_type: immediate, digest or milestone.
        urgency_level: normal, urgent or low.
        delivery_method: email, sms, whatsapp or push.
        content: Opaque payload handed to the transport.
        status: Current lifecycle state.
        scheduled_for: Earliest instant the job may be dispatched (UTC).
        retry_count: Transient failures recorded so far.
        max_retries: Delivery attempts allowed before the job fails.
        processed_at: When the job reached a terminal state.
        failure_reason: Last failure or skip reason.
        message_id: Provider message id of the successful delivery.
        claimed_at: When a worker claimed the job.
        claimed_by: Worker id holding the claim.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    recipient = models.ForeignKey(
        "scheduling.Recipient",
        on_delete=models.CASCADE,
        related_name="notification_jobs",
        db_column="recipient_id",
    )
    group = models.ForeignKey(
        "scheduling.RecipientGroup",
        on_delete=models.CASCADE,
        related_name="notification_jobs",
        db_column="group_id",
    )
    update_id = models.UUIDField(null=True, blank=True)
    notification_type = models.CharField(
        max_length=20, choices=_choices(NotificationType)
    )
    urgency_level = models.CharField(
        max_length=10,
        choices=_choices(UrgencyLevel),
        default=UrgencyLevel.NORMAL.value,
    )
    delivery_method = models.CharField(max_length=20, choices=_choices(DeliveryMethod))
    content = models.JSONField(default=dict)
    status = models.CharField(
        max_length=20,
        choices=_choices(JobStatus),
        default=JobStatus.PENDING.value,
    )
    scheduled_for = models.DateTimeField()
    retry_count = models.PositiveIntegerField(default=0)
    max_retries = models.PositiveIntegerField(default=3)
    processed_at = models.DateTimeField(null=True, blank=True)
    failure_reason = models.TextField(null=True, blank=True)
    message_id = models.CharField(max_length=255, null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    claimed_at = models.DateTimeField(null=True, blank=True)
    claimed_by = models.CharField(max_length=100, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Django model metadata."""

        db_table = "notification_jobs"
        managed = False
        ordering: ClassVar[list[str]] = ["scheduled_for", "created_at"]
        indexes: ClassVar[list] = [
            models.Index(fields=["status", "scheduled_for"]),
            models.Index(fields=["recipient", "-created_at"]),
            models.Index(fields=["recipient", "update_id", "notification_type"]),
        ]

    def __str__(self) -> str:
        return f"{self.notification_type} job for {self.recipient_id} - {self.status}"

    def __repr__(self) -> str:
        return (
            f"<NotificationJob(id={self.id}, "
            f"type={self.notification_type}, "
            f"status={self.status}, "
            f"scheduled_for={self.scheduled_for})>"
        )
