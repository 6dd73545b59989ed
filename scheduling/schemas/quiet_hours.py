"""Schemas for quiet-hours configuration and status."""

from datetime import datetime, time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator, model_validator

from scheduling.enums import BoundaryKind
from scheduling.schemas.base_schema_model import BaseSchemaModel


def validate_timezone_name(value: str) -> str:
    """Reject timezone names the tz database does not know."""
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {value}") from e
    return value


class QuietHours(BaseSchemaModel):
    """A daily window during which non-urgent notifications are held back.

    ``start`` and ``end`` are local wall-clock times in ``timezone`` and both
    are inclusive. A window with ``start`` after ``end`` wraps past midnight.
    ``holiday_mode`` is carried for callers and not interpreted here.
    """

    enabled: bool = False
    start: time | None = None
    end: time | None = None
    timezone: str = "UTC"
    weekdays_only: bool = False
    holiday_mode: bool = False

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value: str) -> str:
        return validate_timezone_name(value)

    @model_validator(mode="after")
    def require_bounds_when_enabled(self) -> "QuietHours":
        if self.enabled and (self.start is None or self.end is None):
            raise ValueError("Enabled quiet hours need both start and end")
        return self


class QuietHoursStatus(BaseSchemaModel):
    """Quiet-hours state of a recipient at a given instant."""

    recipient_id: str
    checked_at: datetime
    in_quiet_hours: bool
    holiday_mode: bool = False
    next_boundary: datetime | None = None
    boundary_kind: BoundaryKind | None = None
    next_notification_time: datetime = Field(
        ..., description="Earliest instant a normal-urgency notification may fire"
    )
