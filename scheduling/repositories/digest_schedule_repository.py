"""Repository for digest schedule rows."""

from datetime import datetime
from uuid import UUID

from django.utils import timezone

from scheduling.models import DigestSchedule
from scheduling.schemas import DigestScheduleRecord


class DigestScheduleRepository:
    """Persistence for digest schedules, returned as pydantic records."""

    @staticmethod
    def get(schedule_id: int) -> DigestScheduleRecord | None:
        schedule = DigestSchedule.objects.filter(pk=schedule_id).first()
        if schedule is None:
            return None
        return DigestScheduleRecord.model_validate(schedule)

    @staticmethod
    def find(
        recipient_id: UUID, group_id: UUID, frequency: str
    ) -> DigestScheduleRecord | None:
        """Return the schedule for (recipient, group, frequency), if any."""
        schedule = DigestSchedule.objects.filter(
            recipient_id=recipient_id, group_id=group_id, frequency=frequency
        ).first()
        if schedule is None:
            return None
        return DigestScheduleRecord.model_validate(schedule)

    @staticmethod
    def upsert(
        recipient_id: UUID,
        group_id: UUID,
        frequency: str,
        values: dict,
    ) -> DigestScheduleRecord:
        """Create or replace the schedule keyed by (recipient, group, frequency)."""
        schedule, _ = DigestSchedule.objects.update_or_create(
            recipient_id=recipient_id,
            group_id=group_id,
            frequency=frequency,
            defaults=values,
        )
        return DigestScheduleRecord.model_validate(schedule)

    @staticmethod
    def list_due(now: datetime, limit: int) -> list[DigestScheduleRecord]:
        """Active schedules whose next digest is due, oldest first."""
        queryset = DigestSchedule.objects.filter(
            is_active=True,
            next_digest_scheduled__isnull=False,
            next_digest_scheduled__lte=now,
        ).order_by("next_digest_scheduled")[:limit]
        return [DigestScheduleRecord.model_validate(row) for row in queryset]

    @staticmethod
    def advance(
        schedule_id: int, expected_next: datetime, next_run: datetime
    ) -> bool:
        """Move ``next_digest_scheduled`` forward if nobody else already did.

        Returns:
            True when this caller advanced the schedule
        """
        updated = DigestSchedule.objects.filter(
            pk=schedule_id, next_digest_scheduled=expected_next
        ).update(next_digest_scheduled=next_run, updated_at=timezone.now())
        return bool(updated)

    @staticmethod
    def mark_sent(
        schedule_id: int, sent_at: datetime, next_run: datetime
    ) -> None:
        DigestSchedule.objects.filter(pk=schedule_id).update(
            last_digest_sent=sent_at,
            next_digest_scheduled=next_run,
            updated_at=timezone.now(),
        )
