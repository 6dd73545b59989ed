"""Django application configuration for the scheduling engine."""

import logging

from django.apps import AppConfig
from django.conf import settings

logger = logging.getLogger(__name__)


class SchedulingConfig(AppConfig):
    """Configuration class for the scheduling application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "scheduling"

    def ready(self) -> None:
        """Wire signal handlers and logging when Django app is ready."""
        import scheduling.signals  # noqa: PLC0415

        del scheduling.signals

        if not getattr(settings, "TEST_MODE", False):
            from scheduling.logging import setup_logging  # noqa: PLC0415

            setup_logging()
        logger.info("Scheduling engine initialized")
