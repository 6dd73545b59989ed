"""DeliveryAttempt model: append-only log of transport calls and skips."""

from typing import ClassVar

from django.db import models


class DeliveryAttempt(models.Model):
    """One transport call (or skip decision) for a notification job."""

    job = models.ForeignKey(
        "scheduling.NotificationJob",
        on_delete=models.CASCADE,
        related_name="attempts",
        db_column="job_id",
    )
    recipient_id = models.UUIDField()
    group_id = models.UUIDField()
    delivery_method = models.CharField(max_length=20)
    outcome = models.CharField(max_length=20)
    provider_message_id = models.CharField(max_length=255, null=True, blank=True)
    error_kind = models.CharField(max_length=20, null=True, blank=True)
    error_message = models.TextField(null=True, blank=True)
    duration_ms = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        """Django model metadata."""

        db_table = "delivery_attempts"
        managed = False
        ordering: ClassVar[list[str]] = ["created_at"]
        indexes: ClassVar[list] = [
            models.Index(fields=["job", "created_at"]),
        ]

    def __str__(self) -> str:
        return f"{self.delivery_method} attempt for job {self.job_id}: {self.outcome}"
