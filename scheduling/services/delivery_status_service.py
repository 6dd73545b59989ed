"""Read-only views of job status, history, metrics and quiet hours."""

from datetime import datetime
from uuid import UUID

from django.utils import timezone

from scheduling.constants import RECENT_FAILURES_LIMIT
from scheduling.enums import JobStatus, UrgencyLevel
from scheduling.exceptions import JobNotFoundError, RecipientNotFoundError
from scheduling.repositories import DjangoJobRepository, RecipientRepository
from scheduling.schemas import (
    DeliveryAttemptRecord,
    JobMetrics,
    NotificationJobRecord,
    QuietHoursStatus,
)
from scheduling.services.quiet_hours_evaluator import quiet_hours_evaluator


class DeliveryStatusService:
    """Answers questions about jobs and recipients without changing anything."""

    def __init__(self, repository=None, recipients=None, quiet_hours=None):
        self.repository = repository or DjangoJobRepository()
        self.recipients = recipients or RecipientRepository()
        self.quiet_hours = quiet_hours or quiet_hours_evaluator

    def get_job(self, job_id: UUID) -> NotificationJobRecord:
        job = self.repository.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def get_job_attempts(self, job_id: UUID) -> list[DeliveryAttemptRecord]:
        self.get_job(job_id)
        return self.repository.list_attempts(job_id)

    def get_recipient_history(
        self,
        recipient_id: UUID,
        status: JobStatus | None = None,
        limit: int = 50,
    ) -> list[NotificationJobRecord]:
        """Return a recipient's jobs, newest first, failure reasons included."""
        return self.repository.list_for_recipient(recipient_id, status, limit)

    def get_metrics(self, now: datetime | None = None) -> JobMetrics:
        """Aggregate counts, success rate, processing time and backlog."""
        now = now or timezone.now()
        status_breakdown = self.repository.count_by("status")
        sent = status_breakdown.get(JobStatus.SENT.value, 0)
        failed = status_breakdown.get(JobStatus.FAILED.value, 0)
        finished = sent + failed

        return JobMetrics(
            total_jobs=sum(status_breakdown.values()),
            status_breakdown=status_breakdown,
            delivery_method_breakdown=self.repository.count_by("delivery_method"),
            type_breakdown=self.repository.count_by("notification_type"),
            success_rate=round(sent / finished, 4) if finished else 0.0,
            average_processing_seconds=round(
                self.repository.average_processing_seconds(), 3
            ),
            due_backlog=self.repository.count_due(now),
            recent_failures=self.repository.list_recent_failures(RECENT_FAILURES_LIMIT),
            generated_at=now,
        )

    def is_in_quiet_hours(self, recipient_id: UUID, now: datetime | None = None) -> bool:
        profile = self._profile(recipient_id)
        return self.quiet_hours.is_quiet(now or timezone.now(), profile.quiet_hours)

    def get_next_notification_time(
        self,
        recipient_id: UUID,
        urgency_level: str = UrgencyLevel.NORMAL.value,
        now: datetime | None = None,
    ) -> datetime:
        """Earliest instant a notification of ``urgency_level`` may fire.

        Urgent notifications may fire immediately. Others wait out a mute
        and then the quiet window in force at that moment.
        """
        now = now or timezone.now()
        if urgency_level == UrgencyLevel.URGENT:
            return now
        profile = self._profile(recipient_id)
        candidate = now
        if profile.muted_until is not None and profile.muted_until > candidate:
            candidate = profile.muted_until
        quiet_end = self.quiet_hours.deferral_until(candidate, profile.quiet_hours)
        return quiet_end or candidate

    def get_quiet_hours_status(
        self, recipient_id: UUID, now: datetime | None = None
    ) -> QuietHoursStatus:
        now = now or timezone.now()
        profile = self._profile(recipient_id)
        config = profile.quiet_hours
        boundary = self.quiet_hours.next_boundary(now, config)
        return QuietHoursStatus(
            recipient_id=str(recipient_id),
            checked_at=now,
            in_quiet_hours=self.quiet_hours.is_quiet(now, config),
            holiday_mode=bool(config and config.holiday_mode),
            next_boundary=boundary[0] if boundary else None,
            boundary_kind=boundary[1] if boundary else None,
            next_notification_time=self.get_next_notification_time(
                recipient_id, now=now
            ),
        )

    def _profile(self, recipient_id: UUID):
        profile = self.recipients.get_profile(recipient_id)
        if profile is None:
            raise RecipientNotFoundError(recipient_id)
        return profile


delivery_status_service = DeliveryStatusService()
