"""Digest schedule configuration and the due-digest sweep."""

from collections.abc import Callable
from datetime import datetime
from typing import Any

from django.conf import settings
from django.utils import timezone
from django.utils.module_loading import import_string

import pydantic
import structlog

from scheduling.enums import NotificationType
from scheduling.exceptions import RecipientNotFoundError, ValidationError
from scheduling.repositories import DigestScheduleRepository, RecipientRepository
from scheduling.schemas import DigestScheduleRecord, DigestScheduleRequest
from scheduling.services.digest_schedule_resolver import digest_schedule_resolver
from scheduling.services.notification_job_queue import notification_job_queue

logger = structlog.get_logger(__name__)

DigestCompiler = Callable[[DigestScheduleRecord, datetime | None, datetime], dict]


def build_digest_content(
    schedule: DigestScheduleRecord,
    period_start: datetime | None,
    period_end: datetime,
) -> dict[str, Any]:
    """Default digest compiler.

    Produces the envelope the transports render; the narrative itself is
    compiled elsewhere and attached by a custom ``DIGEST_COMPILER``.
    """
    return {
        "subject": f"Your {schedule.frequency} family update digest",
        "text": "Here is what you missed since your last digest.",
        "frequency": schedule.frequency,
        "period_start": period_start.isoformat() if period_start else None,
        "period_end": period_end.isoformat(),
        "max_updates": schedule.max_updates_per_digest,
        "content_types": schedule.include_content_types,
    }


class DigestService:
    """Keeps digest schedules and turns due schedules into digest jobs."""

    def __init__(
        self,
        schedules=None,
        recipients=None,
        resolver=None,
        queue=None,
        compiler: DigestCompiler | None = None,
    ):
        self.schedules = schedules or DigestScheduleRepository()
        self.recipients = recipients or RecipientRepository()
        self.resolver = resolver or digest_schedule_resolver
        self.queue = queue or notification_job_queue
        self._compiler = compiler

    @property
    def compiler(self) -> DigestCompiler:
        if self._compiler is None:
            self._compiler = import_string(settings.DIGEST_COMPILER)
        return self._compiler

    def configure_schedule(
        self,
        request: DigestScheduleRequest | dict[str, Any],
        now: datetime | None = None,
    ) -> DigestScheduleRecord:
        """Validate and store a recipient's digest schedule.

        The schedule replaces any existing one for the same recipient, group
        and frequency. Its first run is computed from ``now``.

        Raises:
            ValidationError: If the schedule is malformed (nothing is stored)
            RecipientNotFoundError: If the recipient does not exist
        """
        now = now or timezone.now()
        if not isinstance(request, DigestScheduleRequest):
            try:
                request = DigestScheduleRequest.model_validate(request)
            except pydantic.ValidationError as e:
                raise ValidationError.from_pydantic(e, "Invalid digest schedule") from e

        config = self.resolver.validate(request)
        profile = self.recipients.get_profile(request.recipient_id)
        if profile is None:
            raise RecipientNotFoundError(request.recipient_id)
        group_id = request.group_id or profile.group_id
        if group_id != profile.group_id:
            raise ValidationError(
                f"Recipient {profile.id} does not belong to group {group_id}"
            )

        next_run = self.resolver.compute_next_run(config, now)
        schedule = self.schedules.upsert(
            recipient_id=profile.id,
            group_id=group_id,
            frequency=config.frequency,
            values={
                "delivery_day": config.delivery_day,
                "delivery_time": config.delivery_time,
                "timezone": config.timezone,
                "is_active": request.is_active,
                "max_updates_per_digest": request.max_updates_per_digest,
                "include_content_types": request.include_content_types,
                "digest_settings": request.digest_settings,
                "next_digest_scheduled": next_run if request.is_active else None,
            },
        )
        logger.info(
            "digest_schedule_configured",
            schedule_id=schedule.id,
            recipient_id=str(profile.id),
            frequency=schedule.frequency,
            next_digest_scheduled=next_run.isoformat(),
        )
        return schedule

    def create_due_digest_jobs(
        self, now: datetime | None = None, limit: int | None = None
    ) -> list:
        """Create a digest job for every active schedule that is due.

        Each schedule is advanced to its next run before its job is created,
        so concurrent sweeps never produce two digests for the same period.
        A recipient who is muted or inactive simply misses that period. If
        compiling or enqueueing fails for any other reason the schedule is
        put back to its due instant and the sweep moves on.

        Returns:
            IDs of the digest jobs created
        """
        now = now or timezone.now()
        limit = limit or settings.NOTIFICATION_DISPATCH_BATCH_SIZE
        created = []

        for schedule in self.schedules.list_due(now, limit):
            due_at = schedule.next_digest_scheduled
            next_run = self.resolver.compute_next_run(schedule, now)
            if not self.schedules.advance(schedule.id, due_at, next_run):
                logger.debug("digest_schedule_already_advanced", schedule_id=schedule.id)
                continue

            try:
                content = self.compiler(schedule, schedule.last_digest_sent, now)
                job_id = self.queue.enqueue(
                    {
                        "recipient_id": schedule.recipient_id,
                        "group_id": schedule.group_id,
                        "notification_type": NotificationType.DIGEST,
                        "content": content,
                        "metadata": {
                            "digest_schedule_id": schedule.id,
                            "digest_frequency": schedule.frequency,
                        },
                        "scheduled_for": due_at,
                    },
                    now=now,
                )
            except ValidationError as e:
                logger.info(
                    "digest_skipped",
                    schedule_id=schedule.id,
                    recipient_id=str(schedule.recipient_id),
                    reason=str(e),
                )
                continue
            except Exception:
                logger.exception(
                    "digest_job_creation_failed",
                    schedule_id=schedule.id,
                    recipient_id=str(schedule.recipient_id),
                )
                # Hand the period back so the next sweep retries it.
                self.schedules.advance(schedule.id, next_run, due_at)
                continue

            created.append(job_id)
            logger.info(
                "digest_job_created",
                schedule_id=schedule.id,
                job_id=str(job_id),
                next_digest_scheduled=next_run.isoformat(),
            )

        return created


digest_service = DigestService()
