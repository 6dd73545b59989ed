"""Schemas for recipient profiles and effective notification preferences."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from scheduling.enums import DeliveryMethod, PreferenceFrequency, PreferenceSource
from scheduling.schemas.base_schema_model import BaseSchemaModel
from scheduling.schemas.quiet_hours import QuietHours


class RecipientProfile(BaseSchemaModel):
    """A recipient merged with the defaults of their group.

    Built by the recipient repository; carries both version counters so the
    preference cache can tell when an entry was superseded.
    """

    id: UUID
    group_id: UUID
    name: str
    email: str | None = None
    phone: str | None = None
    push_token: str | None = None
    is_active: bool = True
    overrides_group_default: bool = False
    notification_frequency: PreferenceFrequency | None = None
    preferred_channels: list[str] | None = None
    content_types: list[str] | None = None
    muted_until: datetime | None = None
    preserve_urgent: bool = True
    quiet_hours: QuietHours | None = None
    timezone: str = "UTC"
    preferences_version: int = 1
    group_default_frequency: PreferenceFrequency | None = None
    group_default_channels: list[str] | None = None
    group_default_content_types: list[str] | None = None
    group_preferences_version: int = 1

    @property
    def combined_version(self) -> int:
        return self.preferences_version + self.group_preferences_version

    def address_for(self, delivery_method: str) -> str | None:
        """Return the address a channel delivers to, or None if unreachable."""
        if delivery_method == DeliveryMethod.EMAIL:
            return self.email or None
        if delivery_method in (DeliveryMethod.SMS, DeliveryMethod.WHATSAPP):
            return self.phone or None
        if delivery_method == DeliveryMethod.PUSH:
            return self.push_token or None
        return None

    def can_receive(self, delivery_method: str) -> bool:
        return self.address_for(delivery_method) is not None


class PreferenceCacheEntry(BaseSchemaModel):
    """Effective preferences of a recipient, as cached.

    ``cache_version`` is the combined recipient and group preference version
    at the time the entry was computed.
    """

    recipient_id: UUID
    group_id: UUID
    effective_channels: list[str] = Field(default_factory=list)
    effective_content_types: list[str] = Field(default_factory=list)
    effective_frequency: PreferenceFrequency
    is_muted: bool = False
    muted_until: datetime | None = None
    preserve_urgent: bool = True
    source: PreferenceSource
    cache_version: int
    cache_expires_at: datetime
