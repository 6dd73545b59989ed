"""Database models for the scheduling application."""

from scheduling.models.delivery_attempt import DeliveryAttempt
from scheduling.models.digest_schedule import DigestSchedule
from scheduling.models.notification_job import NotificationJob
from scheduling.models.recipient import Recipient, RecipientGroup

__all__ = [
    "DeliveryAttempt",
    "DigestSchedule",
    "NotificationJob",
    "Recipient",
    "RecipientGroup",
]
