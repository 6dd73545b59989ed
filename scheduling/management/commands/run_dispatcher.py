"""Run the notification dispatcher as a long-lived polling loop.

Each tick recovers stale claims, turns due digest schedules into jobs and
then dispatches every due job. Several dispatchers may run side by side;
claims are exclusive per job.
"""

import random
import time

from django.conf import settings
from django.core.management.base import BaseCommand

import structlog

from scheduling.jobs.dispatch_jobs import schedule_periodic_jobs
from scheduling.logging.context import clear_worker_id, set_worker_id
from scheduling.services.digest_service import digest_service
from scheduling.services.notification_job_queue import (
    default_worker_id,
    notification_job_queue,
)

logger = structlog.get_logger(__name__)


class Command(BaseCommand):
    """Poll for due notification jobs and deliver them."""

    help = "Dispatch due notification jobs on a fixed polling interval"

    def add_arguments(self, parser):
        parser.add_argument(
            "--once",
            action="store_true",
            help="Run a single dispatch tick and exit",
        )
        parser.add_argument(
            "--worker-id",
            default=None,
            help="Identifier recorded on claimed jobs (defaults to host:pid)",
        )
        parser.add_argument(
            "--interval",
            type=float,
            default=None,
            help="Seconds between ticks (defaults to the dispatch interval setting)",
        )
        parser.add_argument(
            "--schedule-rq",
            action="store_true",
            help="Register the recurring jobs with rq-scheduler and exit",
        )

    def handle(self, *args, **options):
        interval = options["interval"] or settings.NOTIFICATION_DISPATCH_INTERVAL_SECONDS

        if options["schedule_rq"]:
            job_ids = schedule_periodic_jobs(interval=interval)
            self.stdout.write(
                self.style.SUCCESS(f"Scheduled {len(job_ids)} recurring jobs")
            )
            return

        worker_id = options["worker_id"] or default_worker_id()
        set_worker_id(worker_id)
        try:
            if options["once"]:
                summary = self.tick(worker_id, run_maintenance=True)
                self.stdout.write(
                    f"due={summary.due} sent={summary.sent} retried={summary.retried} "
                    f"failed={summary.failed} skipped={summary.skipped} "
                    f"deferred={summary.deferred}"
                )
                return
            self.run_forever(worker_id, interval)
        finally:
            clear_worker_id()

    def tick(self, worker_id: str, run_maintenance: bool):
        """Run one dispatch pass, optionally preceded by maintenance."""
        if run_maintenance:
            notification_job_queue.reap_stale_processing()
            digest_service.create_due_digest_jobs()
        return notification_job_queue.dispatch_due(worker_id=worker_id)

    def run_forever(self, worker_id: str, interval: float) -> None:
        max_backoff = settings.NOTIFICATION_MAX_BACKOFF_SECONDS
        maintenance_every = settings.NOTIFICATION_MAINTENANCE_INTERVAL_SECONDS
        backoff = interval
        last_maintenance = None

        logger.info("dispatcher_started", worker_id=worker_id, interval_seconds=interval)
        try:
            while True:
                started = time.monotonic()
                run_maintenance = (
                    last_maintenance is None
                    or started - last_maintenance >= maintenance_every
                )
                try:
                    self.tick(worker_id, run_maintenance)
                except Exception:
                    sleep_for = min(backoff * (2.0 + random.uniform(0.0, 0.5)), max_backoff)
                    logger.exception(
                        "dispatcher_tick_failed",
                        worker_id=worker_id,
                        retry_in_seconds=round(sleep_for, 2),
                    )
                    backoff = sleep_for
                    time.sleep(sleep_for)
                    continue

                if run_maintenance:
                    last_maintenance = started
                backoff = interval
                time.sleep(interval)
        except KeyboardInterrupt:
            logger.info("dispatcher_stopped", worker_id=worker_id)
