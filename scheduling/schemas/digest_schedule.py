"""Schemas for digest schedule configuration."""

from datetime import datetime, time
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from scheduling.constants import (
    DEFAULT_MAX_UPDATES_PER_DIGEST,
    MAX_MONTHLY_DELIVERY_DAY,
    WEEKDAY_NAMES,
)
from scheduling.enums import DigestFrequency
from scheduling.schemas.base_schema_model import BaseSchemaModel
from scheduling.schemas.quiet_hours import validate_timezone_name


class DigestScheduleConfig(BaseSchemaModel):
    """When a digest is delivered.

    ``delivery_day`` is normalized on validation: weekly schedules accept a
    weekday name or an ISO weekday number (1 = Monday) and store the
    lowercase name; monthly schedules accept a day of month from 1 to 28;
    daily schedules ignore it.
    """

    frequency: DigestFrequency
    delivery_day: str | None = None
    delivery_time: time
    timezone: str = "UTC"

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value: str) -> str:
        return validate_timezone_name(value)

    @field_validator("delivery_day", mode="before")
    @classmethod
    def stringify_delivery_day(cls, value):
        if value is None or value == "":
            return None
        return str(value)

    @model_validator(mode="after")
    def normalize_delivery_day(self) -> "DigestScheduleConfig":
        if self.frequency == DigestFrequency.DAILY:
            self.delivery_day = None
        elif self.frequency == DigestFrequency.WEEKLY:
            self.delivery_day = _normalize_weekday(self.delivery_day)
        else:
            self.delivery_day = _normalize_month_day(self.delivery_day)
        return self


def _normalize_weekday(value: str | None) -> str:
    if value is None:
        raise ValueError("Weekly digests need a delivery day")
    name = value.strip().lower()
    if name in WEEKDAY_NAMES:
        return name
    if name.isdigit() and 1 <= int(name) <= 7:
        return WEEKDAY_NAMES[int(name) - 1]
    raise ValueError(f"Unknown weekday: {value}")


def _normalize_month_day(value: str | None) -> str:
    if value is None:
        raise ValueError("Monthly digests need a delivery day")
    if not value.strip().isdigit():
        raise ValueError(f"Monthly delivery day must be a number, got {value!r}")
    day = int(value)
    if not 1 <= day <= MAX_MONTHLY_DELIVERY_DAY:
        raise ValueError(
            f"Monthly delivery day must be between 1 and {MAX_MONTHLY_DELIVERY_DAY}"
        )
    return str(day)


class DigestScheduleRequest(DigestScheduleConfig):
    """Create or replace a recipient's digest schedule."""

    recipient_id: UUID
    group_id: UUID | None = None
    is_active: bool = True
    max_updates_per_digest: int = Field(default=DEFAULT_MAX_UPDATES_PER_DIGEST, ge=1)
    include_content_types: list[str] = Field(default_factory=list)
    digest_settings: dict = Field(default_factory=dict)


class DigestScheduleRecord(DigestScheduleConfig):
    """A persisted digest schedule."""

    id: int
    recipient_id: UUID
    group_id: UUID
    is_active: bool
    last_digest_sent: datetime | None = None
    next_digest_scheduled: datetime | None = None
    max_updates_per_digest: int
    include_content_types: list[str] = Field(default_factory=list)
    digest_settings: dict = Field(default_factory=dict)
