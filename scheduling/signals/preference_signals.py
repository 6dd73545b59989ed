"""Django signals that keep cached preferences honest."""

from django.db.models.signals import post_save
from django.dispatch import receiver

import structlog

from scheduling.services.preference_resolver import preference_resolver

logger = structlog.get_logger(__name__)


def _only_version_changed(update_fields) -> bool:
    return update_fields is not None and set(update_fields) <= {
        "preferences_version",
        "updated_at",
    }


@receiver(post_save, sender="scheduling.Recipient")
def invalidate_recipient_preferences(
    sender: type,
    instance,
    created: bool,
    update_fields=None,
    **kwargs,
) -> None:
    """Bump a recipient's preference version after their record changes.

    New recipients have nothing cached yet. The in-memory instance is kept in
    step with the stored counter so a later ``save()`` of the same instance
    never writes an older version back.
    """
    if created or _only_version_changed(update_fields):
        return
    preference_resolver.invalidate_recipient(instance.pk, instance.group_id)
    instance.preferences_version += 1


@receiver(post_save, sender="scheduling.RecipientGroup")
def invalidate_group_preferences(
    sender: type,
    instance,
    created: bool,
    update_fields=None,
    **kwargs,
) -> None:
    """Bump a group's preference version after its defaults change."""
    if created or _only_version_changed(update_fields):
        return
    preference_resolver.invalidate_group(instance.pk)
    instance.preferences_version += 1
