"""Django signal handlers for the scheduling engine."""

from scheduling.signals.preference_signals import (
    invalidate_group_preferences,
    invalidate_recipient_preferences,
)

__all__ = ["invalidate_group_preferences", "invalidate_recipient_preferences"]
