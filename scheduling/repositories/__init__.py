"""Storage access for the scheduling engine."""

from scheduling.repositories.digest_schedule_repository import (
    DigestScheduleRepository,
)
from scheduling.repositories.django_job_repository import DjangoJobRepository
from scheduling.repositories.in_memory_job_repository import InMemoryJobRepository
from scheduling.repositories.job_repository import JobRepository
from scheduling.repositories.recipient_repository import RecipientRepository

__all__ = [
    "DigestScheduleRepository",
    "DjangoJobRepository",
    "InMemoryJobRepository",
    "JobRepository",
    "RecipientRepository",
]
