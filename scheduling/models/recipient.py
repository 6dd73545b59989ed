"""Recipient and recipient group models.

Both tables belong to the family-updates database and are read here to
resolve notification preferences. The scheduling engine only ever writes the
``preferences_version`` counters.
"""

import uuid
from typing import ClassVar

from django.db import models


class RecipientGroup(models.Model):
    """A group of recipients sharing default notification preferences.

    Attributes:
        id: Unique identifier for the group.
        name: Display name of the group.
        default_frequency: Frequency applied to members without an override.
        default_channels: Delivery channels applied to members without an override.
        default_content_types: Content types applied to members without an override.
        preferences_version: Monotonic counter bumped on every preference write.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    default_frequency = models.CharField(max_length=30, null=True, blank=True)
    default_channels = models.JSONField(null=True, blank=True)
    default_content_types = models.JSONField(null=True, blank=True)
    preferences_version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Django model metadata."""

        db_table = "recipient_groups"
        managed = False

    def __str__(self) -> str:
        return self.name


class Recipient(models.Model):
    """A person who receives family updates.

    When ``overrides_group_default`` is set the recipient's own frequency,
    channels and content types replace the group defaults. Quiet hours are
    stored as a JSON document with the keys ``enabled``, ``start``, ``end``,
    ``timezone``, ``weekdays_only`` and ``holiday_mode``.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    group = models.ForeignKey(
        RecipientGroup,
        on_delete=models.CASCADE,
        related_name="recipients",
        db_column="group_id",
    )
    name = models.CharField(max_length=255)
    email = models.EmailField(max_length=255, null=True, blank=True)
    phone = models.CharField(max_length=32, null=True, blank=True)
    push_token = models.CharField(max_length=255, null=True, blank=True)
    is_active = models.BooleanField(default=True)
    overrides_group_default = models.BooleanField(default=False)
    notification_frequency = models.CharField(max_length=30, null=True, blank=True)
    preferred_channels = models.JSONField(null=True, blank=True)
    content_types = models.JSONField(null=True, blank=True)
    muted_until = models.DateTimeField(null=True, blank=True)
    preserve_urgent = models.BooleanField(default=True)
    quiet_hours = models.JSONField(null=True, blank=True)
    timezone = models.CharField(max_length=64, default="UTC")
    preferences_version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Django model metadata."""

        db_table = "recipients"
        managed = False
        indexes: ClassVar[list] = [
            models.Index(fields=["group", "is_active"]),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.group_id})"
