"""Quiet-hours evaluation.

Pure functions of (instant, configuration): no storage, no clock, no shared
state. All comparisons happen at minute resolution on the local wall clock of
the configuration's timezone.
"""

from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from scheduling.constants import QUIET_HOURS_RECHECK_MINUTES
from scheduling.enums import BoundaryKind
from scheduling.schemas import QuietHours

# A weekly pattern repeats after seven days; one extra day covers the
# candidate that closes a window opened on the seventh.
_BOUNDARY_SEARCH_DAYS = 8
_SATURDAY = 5


def _minute_of_day(value: time | datetime) -> int:
    return value.hour * 60 + value.minute


def _as_aware(now: datetime) -> datetime:
    if now.tzinfo is None:
        return now.replace(tzinfo=UTC)
    return now


class QuietHoursEvaluator:
    """Decides whether an instant falls inside a recipient's quiet hours."""

    def is_quiet(self, now: datetime, config: QuietHours | None) -> bool:
        """Return True if ``now`` is inside the quiet window.

        Disabled or missing configuration is never quiet, and neither is a
        window whose start equals its end. Both ends are inclusive: a
        22:00-07:00 window is quiet at 22:00 and at 07:00, and open again
        from 07:01. With ``weekdays_only`` the window does not apply on
        Saturday or Sunday, the weekday being read in the configuration's
        own timezone.

        Args:
            now: Instant to evaluate; naive values are taken as UTC
            config: Quiet-hours configuration of the recipient

        Returns:
            Whether non-urgent notifications must be held back at ``now``
        """
        if not self._is_effective(config):
            return False
        local = _as_aware(now).astimezone(ZoneInfo(config.timezone))
        return self._is_quiet_local(local, config)

    def next_boundary(
        self, now: datetime, config: QuietHours | None
    ) -> tuple[datetime, BoundaryKind] | None:
        """Return the next instant after ``now`` where ``is_quiet`` flips.

        The quiet state can only change at the local start minute, at the
        minute after the end, or at local midnight when ``weekdays_only``
        is set. Those candidates are checked in order over the coming week.

        Returns:
            ``(instant_in_utc, kind)`` where kind is ``starts`` if the window
            opens at that instant and ``ends`` if it closes, or None if the
            state never changes (disabled, zero-length or always-on windows).
        """
        if not self._is_effective(config):
            return None
        now = _as_aware(now)
        zone = ZoneInfo(config.timezone)
        current = self.is_quiet(now, config)

        for candidate in self._candidates(now, config, zone):
            state = self._is_quiet_local(candidate, config)
            if state != current:
                kind = BoundaryKind.STARTS if state else BoundaryKind.ENDS
                return candidate.astimezone(UTC), kind
        return None

    def quiet_window_end(
        self, now: datetime, config: QuietHours | None
    ) -> datetime | None:
        """Return when the quiet window containing ``now`` closes.

        None when ``now`` is not quiet or the window never closes.
        """
        if not self.is_quiet(now, config):
            return None
        boundary = self.next_boundary(now, config)
        if boundary is None:
            return None
        return boundary[0]

    def deferral_until(
        self, now: datetime, config: QuietHours | None
    ) -> datetime | None:
        """Return when a non-urgent notification held at ``now`` may go out.

        None when ``now`` is not quiet. A window that never closes holds the
        notification for ``QUIET_HOURS_RECHECK_MINUTES`` and is checked again.
        """
        if not self.is_quiet(now, config):
            return None
        window_end = self.quiet_window_end(now, config)
        if window_end is None:
            return _as_aware(now) + timedelta(minutes=QUIET_HOURS_RECHECK_MINUTES)
        return window_end

    @staticmethod
    def _is_effective(config: QuietHours | None) -> bool:
        return bool(
            config is not None
            and config.enabled
            and config.start is not None
            and config.end is not None
            and config.start != config.end
        )

    @staticmethod
    def _is_quiet_local(local: datetime, config: QuietHours) -> bool:
        if config.weekdays_only and local.weekday() >= _SATURDAY:
            return False
        minute = _minute_of_day(local)
        start = _minute_of_day(config.start)
        end = _minute_of_day(config.end)
        if start > end:
            return minute >= start or minute <= end
        return start <= minute <= end

    def _candidates(self, now: datetime, config: QuietHours, zone: ZoneInfo):
        local_now = now.astimezone(zone)
        moments = []
        for offset in range(_BOUNDARY_SEARCH_DAYS):
            day = local_now.date() + timedelta(days=offset)
            moments.append(self._local(day, config.start, zone))
            moments.append(self._local(day, config.end, zone) + timedelta(minutes=1))
            if config.weekdays_only:
                moments.append(self._local(day, time(0, 0), zone))
        return sorted(
            moment.astimezone(zone) for moment in moments if moment > now
        )

    @staticmethod
    def _local(day: date, wall_time: time, zone: ZoneInfo) -> datetime:
        naive = datetime.combine(day, wall_time.replace(second=0, microsecond=0))
        return naive.replace(tzinfo=zone)


quiet_hours_evaluator = QuietHoursEvaluator()
