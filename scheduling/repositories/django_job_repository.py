"""Django ORM implementation of the job repository."""

from datetime import datetime
from typing import Any
from uuid import UUID

from django.db.models import Count, Q
from django.utils import timezone

from scheduling.enums import JobStatus
from scheduling.models import DeliveryAttempt, NotificationJob
from scheduling.repositories.job_repository import GROUPABLE_FIELDS, JobRepository
from scheduling.schemas import (
    DeliveryAttemptRecord,
    FailedJobSummary,
    NotificationJobRecord,
)


def _db_value(value: Any) -> Any:
    if isinstance(value, JobStatus):
        return value.value
    return value


class DjangoJobRepository(JobRepository):
    """Job repository over the ``notification_jobs`` table.

    Status changes are single ``UPDATE ... WHERE id = %s AND status = %s``
    statements; the affected row count decides who won a race.
    """

    def add(self, job: NotificationJobRecord) -> NotificationJobRecord:
        fields = job.model_dump(exclude={"created_at", "updated_at"})
        instance = NotificationJob.objects.create(**fields)
        return NotificationJobRecord.model_validate(instance)

    def get(self, job_id: UUID) -> NotificationJobRecord | None:
        instance = NotificationJob.objects.filter(pk=job_id).first()
        if instance is None:
            return None
        return NotificationJobRecord.model_validate(instance)

    def list_due(self, now: datetime, limit: int) -> list[NotificationJobRecord]:
        queryset = NotificationJob.objects.filter(
            status=JobStatus.PENDING.value, scheduled_for__lte=now
        ).order_by("scheduled_for", "created_at")[:limit]
        return [NotificationJobRecord.model_validate(job) for job in queryset]

    def transition(
        self,
        job_id: UUID,
        expected: JobStatus,
        new_status: JobStatus,
        **changes: Any,
    ) -> NotificationJobRecord | None:
        self.check_transition(expected, new_status)
        updated = NotificationJob.objects.filter(
            pk=job_id, status=_db_value(JobStatus(expected))
        ).update(
            status=JobStatus(new_status).value,
            updated_at=timezone.now(),
            **{key: _db_value(value) for key, value in changes.items()},
        )
        if not updated:
            return None
        return self.get(job_id)

    def reschedule(
        self,
        job_id: UUID,
        scheduled_for: datetime,
        expected: JobStatus = JobStatus.PENDING,
    ) -> NotificationJobRecord | None:
        updated = NotificationJob.objects.filter(
            pk=job_id, status=JobStatus(expected).value
        ).update(scheduled_for=scheduled_for, updated_at=timezone.now())
        if not updated:
            return None
        return self.get(job_id)

    def find_recent_sibling(
        self, job: NotificationJobRecord, since: datetime
    ) -> NotificationJobRecord | None:
        recently_sent = Q(status=JobStatus.SENT.value, processed_at__gte=since)
        claimed_earlier = Q(
            status=JobStatus.PROCESSING.value,
            claimed_at__gte=since,
            claimed_at__lt=job.claimed_at,
        ) | Q(
            status=JobStatus.PROCESSING.value,
            claimed_at=job.claimed_at,
            id__lt=job.id,
        )
        sibling = (
            NotificationJob.objects.filter(
                recipient_id=job.recipient_id,
                update_id=job.update_id,
                notification_type=job.notification_type,
            )
            .exclude(pk=job.id)
            .filter(recently_sent | claimed_earlier)
            .first()
        )
        if sibling is None:
            return None
        return NotificationJobRecord.model_validate(sibling)

    def list_for_recipient(
        self,
        recipient_id: UUID,
        status: JobStatus | None = None,
        limit: int = 50,
    ) -> list[NotificationJobRecord]:
        queryset = NotificationJob.objects.filter(recipient_id=recipient_id)
        if status is not None:
            queryset = queryset.filter(status=JobStatus(status).value)
        queryset = queryset.order_by("-created_at")[:limit]
        return [NotificationJobRecord.model_validate(job) for job in queryset]

    def list_stale_processing(
        self, claimed_before: datetime
    ) -> list[NotificationJobRecord]:
        queryset = NotificationJob.objects.filter(
            status=JobStatus.PROCESSING.value, claimed_at__lt=claimed_before
        )
        return [NotificationJobRecord.model_validate(job) for job in queryset]

    def count_by(self, field: str) -> dict[str, int]:
        if field not in GROUPABLE_FIELDS:
            raise ValueError(f"Cannot group jobs by {field}")
        rows = (
            NotificationJob.objects.order_by()
            .values(field)
            .annotate(count=Count("id"))
        )
        return {row[field]: row["count"] for row in rows}

    def count_due(self, now: datetime) -> int:
        return NotificationJob.objects.filter(
            status=JobStatus.PENDING.value, scheduled_for__lte=now
        ).count()

    def average_processing_seconds(self) -> float:
        rows = NotificationJob.objects.filter(
            status=JobStatus.SENT.value, processed_at__isnull=False
        ).values_list("created_at", "processed_at")
        durations = [
            max((processed_at - created_at).total_seconds(), 0.0)
            for created_at, processed_at in rows
        ]
        if not durations:
            return 0.0
        return sum(durations) / len(durations)

    def list_recent_failures(self, limit: int) -> list[FailedJobSummary]:
        queryset = NotificationJob.objects.filter(
            status=JobStatus.FAILED.value
        ).order_by("-processed_at")[:limit]
        return [FailedJobSummary.model_validate(job) for job in queryset]

    def record_attempt(self, attempt: DeliveryAttemptRecord) -> None:
        DeliveryAttempt.objects.create(**attempt.model_dump(exclude={"created_at"}))

    def list_attempts(self, job_id: UUID) -> list[DeliveryAttemptRecord]:
        queryset = DeliveryAttempt.objects.filter(job_id=job_id).order_by(
            "created_at", "id"
        )
        return [DeliveryAttemptRecord.model_validate(row) for row in queryset]
