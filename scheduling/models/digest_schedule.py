"""DigestSchedule model: when a recipient's next digest is due."""

from typing import ClassVar

from django.db import models

from scheduling.constants import DEFAULT_MAX_UPDATES_PER_DIGEST
from scheduling.enums import DigestFrequency


class DigestSchedule(models.Model):
    """Recurring digest delivery for one recipient in one group.

    ``delivery_day`` holds a weekday name for weekly schedules and a
    day of month (1-28) for monthly ones; daily schedules leave it empty.
    ``next_digest_scheduled`` is always stored in UTC.
    """

    recipient = models.ForeignKey(
        "scheduling.Recipient",
        on_delete=models.CASCADE,
        related_name="digest_schedules",
        db_column="recipient_id",
    )
    group = models.ForeignKey(
        "scheduling.RecipientGroup",
        on_delete=models.CASCADE,
        related_name="digest_schedules",
        db_column="group_id",
    )
    frequency = models.CharField(
        max_length=10,
        choices=[(member.value, member.value) for member in DigestFrequency],
    )
    delivery_day = models.CharField(max_length=10, null=True, blank=True)
    delivery_time = models.TimeField()
    timezone = models.CharField(max_length=64, default="UTC")
    is_active = models.BooleanField(default=True)
    last_digest_sent = models.DateTimeField(null=True, blank=True)
    next_digest_scheduled = models.DateTimeField(null=True, blank=True)
    max_updates_per_digest = models.PositiveIntegerField(
        default=DEFAULT_MAX_UPDATES_PER_DIGEST
    )
    include_content_types = models.JSONField(default=list, blank=True)
    digest_settings = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Django model metadata."""

        db_table = "digest_schedules"
        managed = False
        unique_together: ClassVar[list[list[str]]] = [
            ["recipient", "group", "frequency"]
        ]
        indexes: ClassVar[list] = [
            models.Index(fields=["is_active", "next_digest_scheduled"]),
        ]

    def __str__(self) -> str:
        return f"{self.frequency} digest for {self.recipient_id}"
