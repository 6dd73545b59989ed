"""Digest schedule resolution.

Computes when a daily, weekly or monthly digest is next due. Wall-clock
arithmetic happens in the schedule's own timezone and every result is
returned in UTC, the storage timezone.
"""

from datetime import UTC, datetime, timedelta
from typing import Any
from zoneinfo import ZoneInfo

import pydantic
import structlog

from scheduling.constants import WEEKDAY_NAMES
from scheduling.enums import DigestFrequency
from scheduling.exceptions import ValidationError
from scheduling.schemas import DigestScheduleConfig

logger = structlog.get_logger(__name__)


class DigestScheduleResolver:
    """Resolves digest delivery instants."""

    def validate(self, config: Any) -> DigestScheduleConfig:
        """Validate a schedule and return its normalized form.

        Accepts a mapping, a pydantic schema or an ORM row. Rejects unknown
        frequencies, weekday names or timezones, malformed delivery times,
        and monthly delivery days outside 1-28.

        Raises:
            ValidationError: If the schedule is malformed
        """
        if isinstance(config, DigestScheduleConfig):
            config = config.model_dump()
        try:
            return DigestScheduleConfig.model_validate(config)
        except pydantic.ValidationError as e:
            error = ValidationError.from_pydantic(e, "Invalid digest schedule")
            logger.info("digest_schedule_rejected", errors=error.details)
            raise error from e

    def compute_next_run(self, schedule: Any, now: datetime) -> datetime:
        """Return the next delivery instant strictly after ``now``.

        - daily: the next occurrence of ``delivery_time``
        - weekly: ``delivery_day`` at ``delivery_time``, 1 to 7 days out,
          never later on the same day
        - monthly: day ``delivery_day`` of this month at ``delivery_time``,
          or of next month once that has passed

        Raises:
            ValidationError: If the schedule is malformed
        """
        config = self.validate(schedule)
        zone = ZoneInfo(config.timezone)
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        local_now = now.astimezone(zone)

        if config.frequency == DigestFrequency.DAILY:
            candidate = self._at(local_now, config, zone)
            if candidate <= local_now:
                candidate = self._at(local_now + timedelta(days=1), config, zone)
        elif config.frequency == DigestFrequency.WEEKLY:
            target = WEEKDAY_NAMES.index(config.delivery_day)
            days_ahead = (target - local_now.weekday()) % 7 or 7
            candidate = self._at(local_now + timedelta(days=days_ahead), config, zone)
        else:
            day = int(config.delivery_day)
            candidate = self._at(local_now.replace(day=day), config, zone)
            if candidate <= local_now:
                year, month = local_now.year, local_now.month + 1
                if month > 12:
                    year, month = year + 1, 1
                candidate = self._at(
                    local_now.replace(year=year, month=month, day=day), config, zone
                )

        return candidate.astimezone(UTC)

    def on_digest_sent(self, schedule: Any, now: datetime) -> tuple[datetime, datetime]:
        """Return ``(last_digest_sent, next_digest_scheduled)`` after a delivery."""
        return now, self.compute_next_run(schedule, now)

    @staticmethod
    def _at(local_day: datetime, config: DigestScheduleConfig, zone: ZoneInfo) -> datetime:
        return datetime.combine(
            local_day.date(),
            config.delivery_time.replace(second=0, microsecond=0, tzinfo=None),
            tzinfo=zone,
        )


digest_schedule_resolver = DigestScheduleResolver()
