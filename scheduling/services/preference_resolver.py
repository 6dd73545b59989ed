"""Effective notification preferences with a versioned TTL cache.

A recipient either overrides their group's defaults or inherits them; groups
without defaults fall back to system defaults. Results are cached in the
Django cache under ``preferences:{recipient}:{group}`` together with the
combined preference version they were computed from. An entry is served only
while it is unexpired AND its version still matches the stored one.
"""

from datetime import datetime, timedelta
from uuid import UUID

from django.conf import settings
from django.core.cache import cache
from django.utils import timezone

import structlog

from scheduling.constants import (
    PREFERENCE_CACHE_KEY,
    SYSTEM_DEFAULT_CHANNELS,
    SYSTEM_DEFAULT_CONTENT_TYPES,
    SYSTEM_DEFAULT_FREQUENCY,
)
from scheduling.enums import PreferenceSource
from scheduling.exceptions import CacheStaleError, RecipientNotFoundError
from scheduling.repositories import RecipientRepository
from scheduling.schemas import PreferenceCacheEntry, RecipientProfile

logger = structlog.get_logger(__name__)


class PreferenceResolver:
    """Resolves and caches a recipient's effective preferences."""

    def __init__(self, recipients=None, cache_backend=None) -> None:
        self.recipients = recipients or RecipientRepository()
        self.cache = cache_backend or cache

    @property
    def ttl_seconds(self) -> int:
        return settings.PREFERENCE_CACHE_TTL_SECONDS

    def resolve(
        self, recipient_id: UUID, now: datetime | None = None
    ) -> PreferenceCacheEntry:
        """Return effective preferences, from cache when still valid.

        Args:
            recipient_id: UUID of the recipient
            now: Evaluation instant (defaults to the current time)

        Returns:
            PreferenceCacheEntry with ``is_muted`` evaluated at ``now``

        Raises:
            RecipientNotFoundError: If the recipient does not exist
        """
        now = now or timezone.now()
        version = self.recipients.get_preference_version(recipient_id)
        if version is None:
            raise RecipientNotFoundError(recipient_id)
        group_id, current_version = version
        key = self.cache_key(recipient_id, group_id)

        try:
            entry = self._read_cached(key, current_version, now)
        except CacheStaleError as e:
            logger.debug(
                "preference_cache_stale",
                recipient_id=str(recipient_id),
                reason=e.reason,
            )
            entry = None

        if entry is None:
            profile = self.recipients.get_profile(recipient_id)
            if profile is None:
                raise RecipientNotFoundError(recipient_id)
            entry = self.merge(profile, now)
            self.cache.set(key, entry.model_dump(), timeout=self.ttl_seconds)
            logger.debug(
                "preference_cache_refreshed",
                recipient_id=str(recipient_id),
                source=entry.source,
                cache_version=entry.cache_version,
            )

        return entry.model_copy(update={"is_muted": _is_muted(entry.muted_until, now)})

    def merge(self, profile: RecipientProfile, now: datetime) -> PreferenceCacheEntry:
        """Combine a recipient's own settings with their group's defaults."""
        group_has_defaults = any(
            value is not None
            for value in (
                profile.group_default_frequency,
                profile.group_default_channels,
                profile.group_default_content_types,
            )
        )
        inherited_channels = profile.group_default_channels or SYSTEM_DEFAULT_CHANNELS
        inherited_content = (
            profile.group_default_content_types or SYSTEM_DEFAULT_CONTENT_TYPES
        )
        inherited_frequency = (
            profile.group_default_frequency or SYSTEM_DEFAULT_FREQUENCY
        )

        if profile.overrides_group_default:
            source = PreferenceSource.MEMBER_OVERRIDE
            channels = profile.preferred_channels or inherited_channels
            content_types = profile.content_types or inherited_content
            frequency = profile.notification_frequency or inherited_frequency
        else:
            source = (
                PreferenceSource.GROUP_DEFAULT
                if group_has_defaults
                else PreferenceSource.SYSTEM_DEFAULT
            )
            channels = inherited_channels
            content_types = inherited_content
            frequency = inherited_frequency

        return PreferenceCacheEntry(
            recipient_id=profile.id,
            group_id=profile.group_id,
            effective_channels=list(channels),
            effective_content_types=list(content_types),
            effective_frequency=frequency,
            is_muted=_is_muted(profile.muted_until, now),
            muted_until=profile.muted_until,
            preserve_urgent=profile.preserve_urgent,
            source=source,
            cache_version=profile.combined_version,
            cache_expires_at=now + timedelta(seconds=self.ttl_seconds),
        )

    def invalidate_recipient(self, recipient_id: UUID, group_id: UUID) -> None:
        """Bump the recipient's version and drop their cache entry."""
        self.recipients.bump_recipient_version(recipient_id)
        self.cache.delete(self.cache_key(recipient_id, group_id))
        logger.info("preferences_invalidated", recipient_id=str(recipient_id))

    def invalidate_group(self, group_id: UUID) -> None:
        """Bump the group's version; every member's entry becomes stale."""
        self.recipients.bump_group_version(group_id)
        self.cache.delete_many(
            [
                self.cache_key(member_id, group_id)
                for member_id in self.recipients.list_member_ids(group_id)
            ]
        )
        logger.info("group_preferences_invalidated", group_id=str(group_id))

    @staticmethod
    def cache_key(recipient_id: UUID, group_id: UUID) -> str:
        return PREFERENCE_CACHE_KEY.format(recipient_id=recipient_id, group_id=group_id)

    def _read_cached(
        self, key: str, current_version: int, now: datetime
    ) -> PreferenceCacheEntry | None:
        raw = self.cache.get(key)
        if raw is None:
            return None
        entry = PreferenceCacheEntry.model_validate(raw)
        if entry.cache_expires_at <= now:
            raise CacheStaleError(key, "expired")
        if entry.cache_version != current_version:
            raise CacheStaleError(key, "version")
        return entry


def _is_muted(muted_until: datetime | None, now: datetime) -> bool:
    return muted_until is not None and muted_until > now


preference_resolver = PreferenceResolver()
