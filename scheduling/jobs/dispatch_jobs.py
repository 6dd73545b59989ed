"""Recurring background jobs for the notification dispatcher.

These functions are executed by RQ workers. ``schedule_periodic_jobs``
registers them with rq-scheduler so every worker pool sweeps the queue on
a fixed interval; the ``run_dispatcher`` management command offers the
same loop in-process.
"""

from datetime import UTC, datetime

from django.conf import settings

import django_rq
import structlog

from scheduling.logging.context import clear_worker_id, set_worker_id
from scheduling.services.digest_service import digest_service
from scheduling.services.notification_job_queue import (
    default_worker_id,
    notification_job_queue,
)

logger = structlog.get_logger(__name__)

DISPATCH_JOB_ID = "notification-scheduler:dispatch-due"
DIGEST_JOB_ID = "notification-scheduler:create-due-digests"
REAPER_JOB_ID = "notification-scheduler:reap-stale"


def dispatch_due_notifications_job(worker_id: str | None = None) -> dict:
    """Deliver every due notification job.

    Returns:
        The sweep's DispatchSummary as a dict (stored as the RQ job result)
    """
    worker_id = worker_id or f"rq-{default_worker_id()}"
    set_worker_id(worker_id)
    try:
        summary = notification_job_queue.dispatch_due(worker_id=worker_id)
        return summary.model_dump()
    finally:
        clear_worker_id()


def create_due_digests_job() -> list[str]:
    """Turn due digest schedules into digest jobs."""
    job_ids = digest_service.create_due_digest_jobs()
    if job_ids:
        logger.info("due_digests_created", count=len(job_ids))
    return [str(job_id) for job_id in job_ids]


def reap_stale_jobs_job() -> int:
    """Recover jobs stuck in processing past their lease."""
    return notification_job_queue.reap_stale_processing()


def schedule_periodic_jobs(interval: float | None = None) -> list[str]:
    """Register the recurring jobs with rq-scheduler.

    Existing registrations are replaced, so running this on every deploy is
    safe.

    Args:
        interval: Dispatch interval in seconds (defaults to
            NOTIFICATION_DISPATCH_INTERVAL_SECONDS)

    Returns:
        IDs of the scheduled jobs
    """
    queue_name = settings.RQ_DISPATCH_QUEUE
    scheduler = django_rq.get_scheduler(queue_name)
    dispatch_interval = int(interval or settings.NOTIFICATION_DISPATCH_INTERVAL_SECONDS)
    maintenance_interval = int(settings.NOTIFICATION_MAINTENANCE_INTERVAL_SECONDS)

    registrations = [
        (DISPATCH_JOB_ID, dispatch_due_notifications_job, dispatch_interval),
        (DIGEST_JOB_ID, create_due_digests_job, maintenance_interval),
        (REAPER_JOB_ID, reap_stale_jobs_job, maintenance_interval),
    ]

    for job_id, func, every in registrations:
        if job_id in scheduler:
            scheduler.cancel(job_id)
        scheduler.schedule(
            scheduled_time=datetime.now(UTC),
            func=func,
            interval=max(every, 1),
            repeat=None,
            id=job_id,
            queue_name=queue_name,
        )
        logger.info("periodic_job_scheduled", job_id=job_id, interval_seconds=every)

    return [job_id for job_id, _, _ in registrations]
