"""Job repository interface.

Every status change goes through ``transition``, a compare-and-swap on the
job's current status. That is the only mutual exclusion the queue relies on:
two workers racing to claim the same job both call
``transition(job_id, PENDING, PROCESSING)`` and exactly one gets a record back.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any
from uuid import UUID

from scheduling.enums import ALLOWED_TRANSITIONS, JobStatus
from scheduling.exceptions import ConflictError
from scheduling.schemas import (
    DeliveryAttemptRecord,
    FailedJobSummary,
    NotificationJobRecord,
)

GROUPABLE_FIELDS = frozenset({"status", "delivery_method", "notification_type"})


class JobRepository(ABC):
    """Storage for notification jobs and their delivery attempts."""

    @abstractmethod
    def add(self, job: NotificationJobRecord) -> NotificationJobRecord:
        """Persist a new pending job and return it as stored."""

    @abstractmethod
    def get(self, job_id: UUID) -> NotificationJobRecord | None:
        """Return the job, or None if it does not exist."""

    @abstractmethod
    def list_due(self, now: datetime, limit: int) -> list[NotificationJobRecord]:
        """Return pending jobs with ``scheduled_for <= now``, oldest first."""

    @abstractmethod
    def transition(
        self,
        job_id: UUID,
        expected: JobStatus,
        new_status: JobStatus,
        **changes: Any,
    ) -> NotificationJobRecord | None:
        """Move a job from ``expected`` to ``new_status`` atomically.

        Applies ``changes`` in the same write. Returns the updated job, or
        None when the job was not in ``expected`` status.
        """

    @abstractmethod
    def reschedule(
        self,
        job_id: UUID,
        scheduled_for: datetime,
        expected: JobStatus = JobStatus.PENDING,
    ) -> NotificationJobRecord | None:
        """Set ``scheduled_for`` if the job is still in ``expected`` status."""

    @abstractmethod
    def find_recent_sibling(
        self, job: NotificationJobRecord, since: datetime
    ) -> NotificationJobRecord | None:
        """Find a job that makes ``job`` a duplicate.

        A sibling shares (recipient_id, update_id, notification_type) and is
        either ``sent`` with ``processed_at >= since``, or ``processing``
        with ``claimed_at >= since`` and a claim that precedes ``job``'s
        (earlier ``claimed_at``, ties broken by id).
        """

    @abstractmethod
    def list_for_recipient(
        self,
        recipient_id: UUID,
        status: JobStatus | None = None,
        limit: int = 50,
    ) -> list[NotificationJobRecord]:
        """Return a recipient's jobs, newest first."""

    @abstractmethod
    def list_stale_processing(
        self, claimed_before: datetime
    ) -> list[NotificationJobRecord]:
        """Return processing jobs claimed before ``claimed_before``."""

    @abstractmethod
    def count_by(self, field: str) -> dict[str, int]:
        """Count jobs grouped by ``status``, ``delivery_method`` or ``notification_type``."""

    @abstractmethod
    def count_due(self, now: datetime) -> int:
        """Count pending jobs already due."""

    @abstractmethod
    def average_processing_seconds(self) -> float:
        """Mean seconds from creation to ``processed_at`` over sent jobs."""

    @abstractmethod
    def list_recent_failures(self, limit: int) -> list[FailedJobSummary]:
        """Return the most recently failed jobs."""

    @abstractmethod
    def record_attempt(self, attempt: DeliveryAttemptRecord) -> None:
        """Append a row to the delivery audit log."""

    @abstractmethod
    def list_attempts(self, job_id: UUID) -> list[DeliveryAttemptRecord]:
        """Return a job's delivery attempts, oldest first."""

    @staticmethod
    def check_transition(expected: JobStatus, new_status: JobStatus) -> None:
        """Reject status changes the job lifecycle does not allow."""
        if (JobStatus(expected), JobStatus(new_status)) not in ALLOWED_TRANSITIONS:
            raise ConflictError(
                f"Illegal job transition {JobStatus(expected).value} -> "
                f"{JobStatus(new_status).value}"
            )
