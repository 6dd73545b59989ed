"""Notification job queue.

Owns the job lifecycle:

    pending -> processing -> sent | failed | skipped
    processing -> pending   (transient failure with retry budget left)
    pending -> cancelled

Jobs are claimed with a status compare-and-swap through the job repository,
so any number of dispatchers may sweep the same table concurrently and each
due job is delivered by at most one of them.
"""

import os
import socket
import time
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

from django.conf import settings
from django.utils import timezone

import pydantic
import structlog

from scheduling.constants import DEFAULT_DIGEST_TIME, DEFAULT_WEEKLY_DIGEST_DAY
from scheduling.enums import (
    AttemptOutcome,
    DeliveryErrorKind,
    DigestFrequency,
    JobStatus,
    NotificationType,
    PreferenceFrequency,
    UrgencyLevel,
)
from scheduling.exceptions import (
    ConflictError,
    JobNotFoundError,
    PermanentDeliveryError,
    RecipientNotFoundError,
    TransientDeliveryError,
    ValidationError,
)
from scheduling.logging.context import get_worker_id
from scheduling.repositories import (
    DigestScheduleRepository,
    DjangoJobRepository,
    JobRepository,
    RecipientRepository,
)
from scheduling.schemas import (
    DeliveryAttemptRecord,
    DeliveryRequest,
    DispatchSummary,
    EnqueueRequest,
    NotificationJobRecord,
    PreferenceCacheEntry,
    RecipientProfile,
)
from scheduling.services.digest_schedule_resolver import digest_schedule_resolver
from scheduling.services.preference_resolver import PreferenceResolver
from scheduling.services.quiet_hours_evaluator import quiet_hours_evaluator
from scheduling.transports import transport_registry

logger = structlog.get_logger(__name__)

# Frequencies that hold immediate updates back until the next digest run.
BATCHED_FREQUENCIES = {
    PreferenceFrequency.DAILY_DIGEST.value: DigestFrequency.DAILY.value,
    PreferenceFrequency.WEEKLY_DIGEST.value: DigestFrequency.WEEKLY.value,
}


def default_worker_id() -> str:
    return f"{socket.gethostname()}-{os.getpid()}"


def _as_aware(moment: datetime) -> datetime:
    if timezone.is_naive(moment):
        return moment.replace(tzinfo=UTC)
    return moment


class NotificationJobQueue:
    """Enqueues, dispatches, retries and cancels notification jobs.

    Collaborators are injected so the queue can run against the ORM in
    production and against in-memory fakes in tests.
    """

    def __init__(
        self,
        repository: JobRepository | None = None,
        recipients=None,
        preferences: PreferenceResolver | None = None,
        transports=None,
        digest_schedules=None,
        quiet_hours=None,
        digest_resolver=None,
    ):
        self.repository = repository or DjangoJobRepository()
        self.recipients = recipients or RecipientRepository()
        self.preferences = preferences or PreferenceResolver(self.recipients)
        self.transports = transports or transport_registry
        self.digest_schedules = digest_schedules or DigestScheduleRepository()
        self.quiet_hours = quiet_hours or quiet_hours_evaluator
        self.digest_resolver = digest_resolver or digest_schedule_resolver

    def enqueue(
        self, request: EnqueueRequest | dict[str, Any], now: datetime | None = None
    ) -> UUID:
        """Validate a notification request and persist it as a pending job.

        Nothing is persisted when the request is rejected.

        Args:
            request: EnqueueRequest or an equivalent mapping
            now: Enqueue instant (defaults to the current time)

        Returns:
            UUID of the new job

        Raises:
            RecipientNotFoundError: If the recipient does not exist
            ValidationError: If the recipient is inactive or muted, the
                frequency preference excludes this kind of update, or no
                requested/preferred channel can reach the recipient
        """
        request = self._parse_request(request)
        now = _as_aware(now or timezone.now())

        profile = self.recipients.get_profile(request.recipient_id)
        if profile is None:
            raise RecipientNotFoundError(request.recipient_id)
        if not profile.is_active:
            raise ValidationError(f"Recipient {profile.id} is inactive")
        group_id = request.group_id or profile.group_id
        if group_id != profile.group_id:
            raise ValidationError(
                f"Recipient {profile.id} does not belong to group {group_id}"
            )

        preferences = self.preferences.resolve(profile.id, now)
        urgent = request.urgency_level == UrgencyLevel.URGENT
        if preferences.is_muted and not (urgent and preferences.preserve_urgent):
            raise ValidationError(
                f"Recipient {profile.id} is muted until "
                f"{preferences.muted_until.isoformat()}"
            )
        if (
            preferences.effective_frequency == PreferenceFrequency.MILESTONES_ONLY
            and request.notification_type == NotificationType.IMMEDIATE
            and not urgent
        ):
            raise ValidationError(
                f"Recipient {profile.id} only receives milestone notifications"
            )

        delivery_method = self._select_channel(
            request.delivery_method, preferences, profile
        )
        scheduled_for = self._initial_schedule(
            request, profile, preferences, group_id, now
        )

        job = self.repository.add(
            NotificationJobRecord(
                id=uuid4(),
                recipient_id=profile.id,
                group_id=group_id,
                update_id=request.update_id,
                notification_type=request.notification_type,
                urgency_level=request.urgency_level,
                delivery_method=delivery_method,
                content=request.content,
                status=JobStatus.PENDING,
                scheduled_for=scheduled_for,
                retry_count=0,
                max_retries=request.max_retries or settings.NOTIFICATION_MAX_RETRIES,
                metadata=request.metadata,
            )
        )

        logger.info(
            "job_enqueued",
            job_id=str(job.id),
            recipient_id=str(job.recipient_id),
            notification_type=job.notification_type,
            delivery_method=job.delivery_method,
            scheduled_for=job.scheduled_for.isoformat(),
            preference_source=preferences.source,
        )
        return job.id

    @staticmethod
    def _parse_request(request: EnqueueRequest | dict[str, Any]) -> EnqueueRequest:
        if isinstance(request, EnqueueRequest):
            return request
        try:
            return EnqueueRequest.model_validate(request)
        except pydantic.ValidationError as e:
            raise ValidationError.from_pydantic(e, "Invalid enqueue request") from e

    @staticmethod
    def _select_channel(
        requested: str | None,
        preferences: PreferenceCacheEntry,
        profile: RecipientProfile,
    ) -> str:
        """Pick the delivery method for a new job.

        A requested method must be one of the recipient's effective channels
        and have an address on file; otherwise the first effective channel
        the recipient can be reached on is used.
        """
        channels = preferences.effective_channels
        if requested is not None:
            if requested not in channels:
                raise ValidationError(
                    f"Recipient {profile.id} has not opted in to {requested}",
                    details={"deliveryMethod": f"allowed: {', '.join(channels)}"},
                )
            if not profile.can_receive(requested):
                raise ValidationError(
                    f"Recipient {profile.id} has no address for {requested}"
                )
            return requested

        for channel in channels:
            if profile.can_receive(channel):
                return channel
        raise ValidationError(
            f"Recipient {profile.id} cannot be reached on any preferred channel"
        )

    def _initial_schedule(
        self,
        request: EnqueueRequest,
        profile: RecipientProfile,
        preferences: PreferenceCacheEntry,
        group_id: UUID,
        now: datetime,
    ) -> datetime:
        urgent = request.urgency_level == UrgencyLevel.URGENT
        if request.scheduled_for is not None:
            scheduled_for = _as_aware(request.scheduled_for)
        elif request.notification_type == NotificationType.DIGEST:
            scheduled_for = self._next_digest_run(
                profile, group_id, preferences.effective_frequency, now
            )
        elif (
            request.notification_type == NotificationType.IMMEDIATE
            and not urgent
            and preferences.effective_frequency in BATCHED_FREQUENCIES
        ):
            scheduled_for = self._next_digest_run(
                profile, group_id, preferences.effective_frequency, now
            )
        else:
            scheduled_for = now

        scheduled_for += timedelta(minutes=request.delay_minutes)

        # Digest jobs are held too: the digest instant is the earliest
        # delivery time, and quiet hours still apply to it.
        if not urgent:
            quiet_end = self.quiet_hours.deferral_until(
                scheduled_for, profile.quiet_hours
            )
            if quiet_end is not None:
                logger.info(
                    "job_deferred_for_quiet_hours",
                    recipient_id=str(profile.id),
                    requested_for=scheduled_for.isoformat(),
                    deferred_to=quiet_end.isoformat(),
                )
                scheduled_for = quiet_end
        return scheduled_for

    def _next_digest_run(
        self,
        profile: RecipientProfile,
        group_id: UUID,
        preference_frequency: str,
        now: datetime,
    ) -> datetime:
        """Next digest instant for a recipient.

        Uses the recipient's own active schedule for the batching frequency
        (any active schedule for explicit digest jobs), else a default
        schedule at 08:00 in the recipient's timezone, Sundays for weekly.
        """
        digest_frequency = BATCHED_FREQUENCIES.get(preference_frequency)
        frequencies = (
            [digest_frequency] if digest_frequency else [f.value for f in DigestFrequency]
        )
        for frequency in frequencies:
            schedule = self.digest_schedules.find(profile.id, group_id, frequency)
            if schedule is None or not schedule.is_active:
                continue
            if schedule.next_digest_scheduled is not None:
                return schedule.next_digest_scheduled
            return self.digest_resolver.compute_next_run(schedule, now)

        frequency = digest_frequency or DigestFrequency.DAILY.value
        return self.digest_resolver.compute_next_run(
            {
                "frequency": frequency,
                "delivery_day": (
                    DEFAULT_WEEKLY_DIGEST_DAY
                    if frequency == DigestFrequency.WEEKLY
                    else None
                ),
                "delivery_time": DEFAULT_DIGEST_TIME,
                "timezone": profile.timezone,
            },
            now,
        )

    def dispatch_due(
        self,
        now: datetime | None = None,
        worker_id: str | None = None,
        limit: int | None = None,
    ) -> DispatchSummary:
        """Claim and deliver every pending job due at ``now``.

        Each job is handled in isolation: an unexpected error on one job is
        logged and the sweep moves on.

        Args:
            now: Sweep instant (defaults to the current time)
            worker_id: Identifier recorded on claimed jobs
            limit: Maximum jobs to look at (defaults to the batch size setting)

        Returns:
            DispatchSummary with one count per outcome
        """
        now = _as_aware(now or timezone.now())
        worker_id = worker_id or get_worker_id() or default_worker_id()
        limit = limit or settings.NOTIFICATION_DISPATCH_BATCH_SIZE

        due_jobs = self.repository.list_due(now, limit)
        summary = DispatchSummary(due=len(due_jobs))

        for job in due_jobs:
            try:
                outcome = self._dispatch_one(job, now, worker_id)
            except Exception:
                logger.exception(
                    "job_dispatch_error",
                    job_id=str(job.id),
                    worker_id=worker_id,
                )
                outcome = "errors"
            setattr(summary, outcome, getattr(summary, outcome) + 1)

        if due_jobs:
            logger.info("dispatch_sweep_completed", **summary.model_dump())
        return summary

    def _dispatch_one(
        self, job: NotificationJobRecord, now: datetime, worker_id: str
    ) -> str:
        profile = self.recipients.get_profile(job.recipient_id)
        urgent = job.urgency_level == UrgencyLevel.URGENT

        if not urgent and profile is not None and profile.is_active:
            quiet_end = self.quiet_hours.deferral_until(now, profile.quiet_hours)
            if quiet_end is not None:
                if self.repository.reschedule(job.id, quiet_end) is None:
                    return "conflicts"
                logger.info(
                    "job_deferred_for_quiet_hours",
                    job_id=str(job.id),
                    deferred_to=quiet_end.isoformat(),
                )
                return "deferred"

        claimed = self.repository.transition(
            job.id,
            JobStatus.PENDING,
            JobStatus.PROCESSING,
            claimed_at=now,
            claimed_by=worker_id,
        )
        if claimed is None:
            logger.debug("job_claim_lost", job_id=str(job.id), worker_id=worker_id)
            return "conflicts"

        skip_reason = self._skip_reason(claimed, profile, now)
        if skip_reason is not None:
            self._skip(claimed, skip_reason, now)
            return "skipped"

        return self._deliver(claimed, profile, now)

    def _skip_reason(
        self,
        job: NotificationJobRecord,
        profile: RecipientProfile | None,
        now: datetime,
    ) -> str | None:
        if profile is None:
            return "Recipient no longer exists"
        if not profile.is_active:
            return "Recipient is inactive"

        try:
            preferences = self.preferences.resolve(job.recipient_id, now)
        except RecipientNotFoundError:
            return "Recipient no longer exists"
        urgent = job.urgency_level == UrgencyLevel.URGENT
        if preferences.is_muted and not (urgent and preferences.preserve_urgent):
            return "Recipient is muted"

        window = timedelta(seconds=settings.NOTIFICATION_DEBOUNCE_SECONDS)
        sibling = self.repository.find_recent_sibling(job, now - window)
        if sibling is not None:
            return f"Duplicate of job {sibling.id} within debounce window"
        return None

    def _skip(self, job: NotificationJobRecord, reason: str, now: datetime) -> None:
        self.repository.transition(
            job.id,
            JobStatus.PROCESSING,
            JobStatus.SKIPPED,
            processed_at=now,
            failure_reason=reason,
        )
        self._record_attempt(job, AttemptOutcome.SKIPPED, error_message=reason)
        logger.info("job_skipped", job_id=str(job.id), reason=reason)

    def _deliver(
        self,
        job: NotificationJobRecord,
        profile: RecipientProfile,
        now: datetime,
    ) -> str:
        started = time.monotonic()
        try:
            address = profile.address_for(job.delivery_method)
            if address is None:
                raise PermanentDeliveryError(
                    f"Recipient has no address for {job.delivery_method}",
                    delivery_method=job.delivery_method,
                )
            transport = self.transports.get(job.delivery_method)
            message_id = transport.send(
                DeliveryRequest(
                    job_id=job.id,
                    recipient_id=job.recipient_id,
                    recipient_name=profile.name,
                    address=address,
                    delivery_method=job.delivery_method,
                    notification_type=job.notification_type,
                    urgency_level=job.urgency_level,
                    content=job.content,
                ),
                timeout=settings.TRANSPORT_TIMEOUT_SECONDS,
            )
        except PermanentDeliveryError as e:
            self._record_attempt(
                job,
                AttemptOutcome.FAILED,
                error_kind=DeliveryErrorKind.PERMANENT,
                error_message=str(e),
                duration_ms=_elapsed_ms(started),
            )
            return self._fail(job, str(e), now)
        except TransientDeliveryError as e:
            self._record_attempt(
                job,
                AttemptOutcome.FAILED,
                error_kind=DeliveryErrorKind.TRANSIENT,
                error_message=str(e),
                duration_ms=_elapsed_ms(started),
            )
            return self._retry_or_fail(job, str(e), now)
        except Exception as e:
            # Unclassified transport errors get the transient treatment.
            logger.exception("transport_unexpected_error", job_id=str(job.id))
            error = f"{type(e).__name__}: {e}"
            self._record_attempt(
                job,
                AttemptOutcome.FAILED,
                error_kind=DeliveryErrorKind.TRANSIENT,
                error_message=error,
                duration_ms=_elapsed_ms(started),
            )
            return self._retry_or_fail(job, error, now)

        self._record_attempt(
            job,
            AttemptOutcome.DELIVERED,
            provider_message_id=message_id,
            duration_ms=_elapsed_ms(started),
        )
        sent = self.repository.transition(
            job.id,
            JobStatus.PROCESSING,
            JobStatus.SENT,
            processed_at=now,
            message_id=message_id,
            failure_reason=None,
        )
        if sent is None:
            logger.warning("job_delivered_after_claim_lost", job_id=str(job.id))
            return "conflicts"

        logger.info(
            "job_sent",
            job_id=str(job.id),
            delivery_method=job.delivery_method,
            message_id=message_id,
        )
        if job.notification_type == NotificationType.DIGEST:
            self._mark_digest_sent(job, now)
        return "sent"

    def _fail(self, job: NotificationJobRecord, reason: str, now: datetime) -> str:
        failed = self.repository.transition(
            job.id,
            JobStatus.PROCESSING,
            JobStatus.FAILED,
            processed_at=now,
            failure_reason=reason,
        )
        if failed is None:
            return "conflicts"
        logger.error("job_failed", job_id=str(job.id), reason=reason)
        return "failed"

    def _retry_or_fail(
        self, job: NotificationJobRecord, error: str, now: datetime
    ) -> str:
        """Return a processing job to pending with backoff, or fail it.

        ``retry_count`` counts transient failures. The job is retried while
        that count stays below ``max_retries``; the failure that reaches it
        is terminal.
        """
        retry_count = job.retry_count + 1
        if retry_count < job.max_retries:
            delay = self.retry_delay(retry_count)
            retried = self.repository.transition(
                job.id,
                JobStatus.PROCESSING,
                JobStatus.PENDING,
                retry_count=retry_count,
                scheduled_for=max(now + delay, job.scheduled_for),
                failure_reason=error,
                claimed_at=None,
                claimed_by=None,
            )
            if retried is None:
                return "conflicts"
            logger.warning(
                "job_retry_scheduled",
                job_id=str(job.id),
                retry_count=retry_count,
                delay_seconds=int(delay.total_seconds()),
                error=error,
            )
            return "retried"

        failed = self.repository.transition(
            job.id,
            JobStatus.PROCESSING,
            JobStatus.FAILED,
            retry_count=retry_count,
            processed_at=now,
            failure_reason=f"Failed after {retry_count} attempts: {error}",
        )
        if failed is None:
            return "conflicts"
        logger.error(
            "job_failed_permanently",
            job_id=str(job.id),
            retry_count=retry_count,
            error=error,
        )
        return "failed"

    @staticmethod
    def retry_delay(retry_count: int) -> timedelta:
        """Backoff before retry ``retry_count``: base * 2^(n-1), capped."""
        seconds = settings.NOTIFICATION_RETRY_BASE_SECONDS * 2 ** (retry_count - 1)
        return timedelta(
            seconds=min(seconds, settings.NOTIFICATION_RETRY_MAX_DELAY_SECONDS)
        )

    def _mark_digest_sent(self, job: NotificationJobRecord, now: datetime) -> None:
        schedule_id = job.metadata.get("digest_schedule_id")
        if schedule_id is None:
            return
        schedule = self.digest_schedules.get(schedule_id)
        if schedule is None:
            return
        last_sent, next_run = self.digest_resolver.on_digest_sent(schedule, now)
        self.digest_schedules.mark_sent(schedule_id, last_sent, next_run)
        logger.info(
            "digest_marked_sent",
            schedule_id=schedule_id,
            next_digest_scheduled=next_run.isoformat(),
        )

    def _record_attempt(
        self,
        job: NotificationJobRecord,
        outcome: AttemptOutcome,
        **fields: Any,
    ) -> None:
        self.repository.record_attempt(
            DeliveryAttemptRecord(
                job_id=job.id,
                recipient_id=job.recipient_id,
                group_id=job.group_id,
                delivery_method=job.delivery_method,
                outcome=outcome,
                **fields,
            )
        )

    def cancel(self, job_id: UUID, now: datetime | None = None) -> NotificationJobRecord:
        """Cancel a pending job.

        Raises:
            JobNotFoundError: If the job does not exist
            ConflictError: If the job is no longer pending
        """
        now = _as_aware(now or timezone.now())
        job = self.repository.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        if job.status != JobStatus.PENDING:
            raise ConflictError(
                f"Job {job_id} cannot be cancelled",
                detail=f"Job is {job.status}",
            )
        cancelled = self.repository.transition(
            job_id, JobStatus.PENDING, JobStatus.CANCELLED, processed_at=now
        )
        if cancelled is None:
            raise ConflictError(
                f"Job {job_id} cannot be cancelled",
                detail="Job was claimed by a dispatcher",
            )
        logger.info("job_cancelled", job_id=str(job_id))
        return cancelled

    def reschedule(
        self, job_id: UUID, scheduled_for: datetime
    ) -> NotificationJobRecord:
        """Move a pending job to ``scheduled_for``, earlier or later.

        Raises:
            JobNotFoundError: If the job does not exist
            ConflictError: If the job is no longer pending
            ValidationError: If ``scheduled_for`` carries no timezone
        """
        if timezone.is_naive(scheduled_for):
            raise ValidationError(
                "scheduled_for must include a timezone",
                details={"scheduledFor": "naive datetime"},
            )
        job = self.repository.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        if job.status != JobStatus.PENDING:
            raise ConflictError(
                f"Job {job_id} cannot be rescheduled",
                detail=f"Job is {job.status}",
            )
        updated = self.repository.reschedule(job_id, scheduled_for)
        if updated is None:
            raise ConflictError(
                f"Job {job_id} cannot be rescheduled",
                detail="Job was claimed by a dispatcher",
            )
        logger.info(
            "job_rescheduled",
            job_id=str(job_id),
            previous=job.scheduled_for.isoformat(),
            scheduled_for=updated.scheduled_for.isoformat(),
        )
        return updated

    def reap_stale_processing(self, now: datetime | None = None) -> int:
        """Recover jobs whose dispatcher died mid-delivery.

        Jobs claimed longer ago than the processing lease go through the
        transient-retry path: back to pending with backoff, or failed once
        their retry budget is spent.

        Returns:
            Number of jobs recovered
        """
        now = _as_aware(now or timezone.now())
        lease = timedelta(seconds=settings.NOTIFICATION_PROCESSING_LEASE_SECONDS)
        recovered = 0
        for job in self.repository.list_stale_processing(now - lease):
            outcome = self._retry_or_fail(job, "Processing lease expired", now)
            if outcome != "conflicts":
                recovered += 1
                logger.warning(
                    "stale_job_recovered",
                    job_id=str(job.id),
                    claimed_by=job.claimed_by,
                    outcome=outcome,
                )
        return recovered


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


notification_job_queue = NotificationJobQueue()
