"""In-process implementation of the job repository.

Used by the dispatcher when no database is configured for jobs (local runs
and multi-threaded tests). A single lock guards every read-modify-write, so
``transition`` gives the same compare-and-swap guarantee as the ORM version
across threads of one process.
"""

import threading
from collections import Counter
from datetime import datetime
from typing import Any
from uuid import UUID

from django.utils import timezone

from scheduling.enums import JobStatus
from scheduling.repositories.job_repository import GROUPABLE_FIELDS, JobRepository
from scheduling.schemas import (
    DeliveryAttemptRecord,
    FailedJobSummary,
    NotificationJobRecord,
)


class InMemoryJobRepository(JobRepository):
    """Jobs and attempts held in dictionaries behind a lock.

    Records are copied on the way in and on the way out so callers can never
    mutate stored state without going through ``transition``.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._jobs: dict[UUID, NotificationJobRecord] = {}
        self._attempts: list[DeliveryAttemptRecord] = []

    def add(self, job: NotificationJobRecord) -> NotificationJobRecord:
        now = timezone.now()
        stored = job.model_copy(
            update={"created_at": job.created_at or now, "updated_at": now},
            deep=True,
        )
        with self._lock:
            self._jobs[stored.id] = stored
        return stored.model_copy(deep=True)

    def get(self, job_id: UUID) -> NotificationJobRecord | None:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy(deep=True) if job else None

    def list_due(self, now: datetime, limit: int) -> list[NotificationJobRecord]:
        with self._lock:
            due = [
                job
                for job in self._jobs.values()
                if job.status == JobStatus.PENDING and job.scheduled_for <= now
            ]
            due.sort(key=lambda job: (job.scheduled_for, job.created_at))
            return [job.model_copy(deep=True) for job in due[:limit]]

    def transition(
        self,
        job_id: UUID,
        expected: JobStatus,
        new_status: JobStatus,
        **changes: Any,
    ) -> NotificationJobRecord | None:
        self.check_transition(expected, new_status)
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.status != JobStatus(expected):
                return None
            updated = job.model_copy(
                update={
                    **changes,
                    "status": JobStatus(new_status).value,
                    "updated_at": timezone.now(),
                },
                deep=True,
            )
            self._jobs[job_id] = updated
            return updated.model_copy(deep=True)

    def reschedule(
        self,
        job_id: UUID,
        scheduled_for: datetime,
        expected: JobStatus = JobStatus.PENDING,
    ) -> NotificationJobRecord | None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.status != JobStatus(expected):
                return None
            updated = job.model_copy(
                update={"scheduled_for": scheduled_for, "updated_at": timezone.now()}
            )
            self._jobs[job_id] = updated
            return updated.model_copy(deep=True)

    def find_recent_sibling(
        self, job: NotificationJobRecord, since: datetime
    ) -> NotificationJobRecord | None:
        with self._lock:
            for other in self._jobs.values():
                if other.id == job.id or not _same_key(other, job):
                    continue
                if other.status == JobStatus.SENT and _at_or_after(
                    other.processed_at, since
                ):
                    return other.model_copy(deep=True)
                if (
                    other.status == JobStatus.PROCESSING
                    and _at_or_after(other.claimed_at, since)
                    and (other.claimed_at, other.id) < (job.claimed_at, job.id)
                ):
                    return other.model_copy(deep=True)
        return None

    def list_for_recipient(
        self,
        recipient_id: UUID,
        status: JobStatus | None = None,
        limit: int = 50,
    ) -> list[NotificationJobRecord]:
        with self._lock:
            jobs = [
                job
                for job in self._jobs.values()
                if job.recipient_id == recipient_id
                and (status is None or job.status == JobStatus(status))
            ]
        jobs.sort(key=lambda job: job.created_at, reverse=True)
        return [job.model_copy(deep=True) for job in jobs[:limit]]

    def list_stale_processing(
        self, claimed_before: datetime
    ) -> list[NotificationJobRecord]:
        with self._lock:
            return [
                job.model_copy(deep=True)
                for job in self._jobs.values()
                if job.status == JobStatus.PROCESSING
                and job.claimed_at is not None
                and job.claimed_at < claimed_before
            ]

    def count_by(self, field: str) -> dict[str, int]:
        if field not in GROUPABLE_FIELDS:
            raise ValueError(f"Cannot group jobs by {field}")
        with self._lock:
            return dict(Counter(getattr(job, field) for job in self._jobs.values()))

    def count_due(self, now: datetime) -> int:
        with self._lock:
            return sum(
                1
                for job in self._jobs.values()
                if job.status == JobStatus.PENDING and job.scheduled_for <= now
            )

    def average_processing_seconds(self) -> float:
        with self._lock:
            durations = [
                max((job.processed_at - job.created_at).total_seconds(), 0.0)
                for job in self._jobs.values()
                if job.status == JobStatus.SENT and job.processed_at is not None
            ]
        if not durations:
            return 0.0
        return sum(durations) / len(durations)

    def list_recent_failures(self, limit: int) -> list[FailedJobSummary]:
        with self._lock:
            failed = [
                job for job in self._jobs.values() if job.status == JobStatus.FAILED
            ]
        failed.sort(key=lambda job: job.processed_at or job.created_at, reverse=True)
        return [FailedJobSummary.model_validate(job) for job in failed[:limit]]

    def record_attempt(self, attempt: DeliveryAttemptRecord) -> None:
        stored = attempt.model_copy(
            update={"created_at": attempt.created_at or timezone.now()}
        )
        with self._lock:
            self._attempts.append(stored)

    def list_attempts(self, job_id: UUID) -> list[DeliveryAttemptRecord]:
        with self._lock:
            return [
                attempt.model_copy()
                for attempt in self._attempts
                if attempt.job_id == job_id
            ]


def _same_key(first: NotificationJobRecord, second: NotificationJobRecord) -> bool:
    return (
        first.recipient_id == second.recipient_id
        and first.update_id == second.update_id
        and first.notification_type == second.notification_type
    )


def _at_or_after(moment: datetime | None, since: datetime) -> bool:
    return moment is not None and moment >= since
