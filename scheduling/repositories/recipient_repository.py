"""Repository for recipient and group preference records."""

from uuid import UUID

from django.db.models import F

from scheduling.models import Recipient, RecipientGroup
from scheduling.schemas import RecipientProfile


class RecipientRepository:
    """Reads recipients together with their group defaults.

    The engine treats recipients as read-only apart from the preference
    version counters, which are bumped with a single ``UPDATE`` so
    concurrent writers never lose an increment.
    """

    @staticmethod
    def get_profile(recipient_id: UUID) -> RecipientProfile | None:
        """Load a recipient merged with its group's defaults.

        Args:
            recipient_id: UUID of the recipient

        Returns:
            RecipientProfile, or None if no such recipient exists
        """
        recipient = (
            Recipient.objects.select_related("group").filter(pk=recipient_id).first()
        )
        if recipient is None:
            return None
        group = recipient.group
        return RecipientProfile(
            id=recipient.id,
            group_id=recipient.group_id,
            name=recipient.name,
            email=recipient.email,
            phone=recipient.phone,
            push_token=recipient.push_token,
            is_active=recipient.is_active,
            overrides_group_default=recipient.overrides_group_default,
            notification_frequency=recipient.notification_frequency,
            preferred_channels=recipient.preferred_channels,
            content_types=recipient.content_types,
            muted_until=recipient.muted_until,
            preserve_urgent=recipient.preserve_urgent,
            quiet_hours=recipient.quiet_hours,
            timezone=recipient.timezone,
            preferences_version=recipient.preferences_version,
            group_default_frequency=group.default_frequency,
            group_default_channels=group.default_channels,
            group_default_content_types=group.default_content_types,
            group_preferences_version=group.preferences_version,
        )

    @staticmethod
    def get_preference_version(recipient_id: UUID) -> tuple[UUID, int] | None:
        """Return (group_id, combined preference version) without loading the profile.

        The combined version is the sum of the recipient's and the group's
        counters, so a write to either invalidates cached preferences.
        """
        row = (
            Recipient.objects.filter(pk=recipient_id)
            .values_list("group_id", "preferences_version", "group__preferences_version")
            .first()
        )
        if row is None:
            return None
        group_id, recipient_version, group_version = row
        return group_id, recipient_version + group_version

    @staticmethod
    def bump_recipient_version(recipient_id: UUID) -> None:
        Recipient.objects.filter(pk=recipient_id).update(
            preferences_version=F("preferences_version") + 1
        )

    @staticmethod
    def bump_group_version(group_id: UUID) -> None:
        RecipientGroup.objects.filter(pk=group_id).update(
            preferences_version=F("preferences_version") + 1
        )

    @staticmethod
    def list_member_ids(group_id: UUID) -> list[UUID]:
        return list(
            Recipient.objects.filter(group_id=group_id).values_list("id", flat=True)
        )
