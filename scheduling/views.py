"""API views for the scheduling engine."""

from uuid import UUID

import pydantic
import structlog
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from scheduling.constants import RECIPIENT_HISTORY_LIMIT
from scheduling.enums import JobStatus
from scheduling.exceptions import ValidationError
from scheduling.pagination import JobHistoryPagination
from scheduling.schemas import RescheduleRequest
from scheduling.services.delivery_status_service import delivery_status_service
from scheduling.services.digest_service import digest_service
from scheduling.services.notification_job_queue import notification_job_queue

logger = structlog.get_logger(__name__)

# Only the digest sweep may pin a delivery instant at enqueue time.
_INTERNAL_ENQUEUE_FIELDS = ("scheduled_for", "scheduledFor")


def _dump(model) -> dict:
    return model.model_dump(by_alias=True, mode="json")


class NotificationJobListView(APIView):
    """Queue a notification job."""

    def post(self, request):
        """Enqueue a notification for one recipient.

        Returns:
            201 Created with the stored job
            400 Bad Request if the recipient is inactive or muted, or the
                request is malformed
            404 Not Found if the recipient does not exist
        """
        payload = {
            key: value
            for key, value in request.data.items()
            if key not in _INTERNAL_ENQUEUE_FIELDS
        }
        job_id = notification_job_queue.enqueue(payload)
        job = delivery_status_service.get_job(job_id)
        return Response(_dump(job), status=status.HTTP_201_CREATED)


class NotificationJobDetailView(APIView):
    """Read a single job together with its delivery attempts."""

    def get(self, _request, job_id: UUID):
        job = delivery_status_service.get_job(job_id)
        attempts = delivery_status_service.get_job_attempts(job_id)
        data = _dump(job)
        data["attempts"] = [_dump(attempt) for attempt in attempts]
        return Response(data, status=status.HTTP_200_OK)


class NotificationJobCancelView(APIView):
    """Cancel a pending job."""

    def post(self, _request, job_id: UUID):
        """Cancel a job that has not been claimed yet.

        Returns:
            200 OK with the cancelled job
            404 Not Found if the job does not exist
            409 Conflict if the job is no longer pending
        """
        job = notification_job_queue.cancel(job_id)
        return Response(_dump(job), status=status.HTTP_200_OK)


class NotificationJobRescheduleView(APIView):
    """Move a pending job to a new delivery instant."""

    def post(self, request, job_id: UUID):
        try:
            reschedule_request = RescheduleRequest.model_validate(request.data)
        except pydantic.ValidationError as e:
            logger.warning("reschedule_request_invalid", job_id=str(job_id))
            raise ValidationError.from_pydantic(e, "Invalid reschedule request") from e

        job = notification_job_queue.reschedule(
            job_id, reschedule_request.scheduled_for
        )
        return Response(_dump(job), status=status.HTTP_200_OK)


class JobMetricsView(APIView):
    """Queue-wide delivery metrics."""

    def get(self, _request):
        metrics = delivery_status_service.get_metrics()
        return Response(_dump(metrics), status=status.HTTP_200_OK)


class DispatchView(APIView):
    """Run one dispatch sweep on demand.

    Useful for operators draining the backlog without waiting for the next
    scheduled sweep. Jobs are claimed exactly as the background dispatcher
    claims them.
    """

    def post(self, _request):
        summary = notification_job_queue.dispatch_due()
        return Response(_dump(summary), status=status.HTTP_200_OK)


class RecipientJobHistoryView(APIView):
    """Paginated job history for one recipient, newest first."""

    def get(self, request, recipient_id: UUID):
        """List a recipient's jobs, including failure reasons.

        Query parameters:
        - status: Filter by job status (optional)
        - page / page_size: Pagination
        """
        status_filter = request.query_params.get("status")
        if status_filter:
            try:
                status_filter = JobStatus(status_filter)
            except ValueError as e:
                raise ValidationError(
                    "Invalid status filter",
                    details={
                        "status": "Must be one of: "
                        + ", ".join(s.value for s in JobStatus)
                    },
                ) from e

        jobs = delivery_status_service.get_recipient_history(
            recipient_id, status=status_filter, limit=RECIPIENT_HISTORY_LIMIT
        )
        paginator = JobHistoryPagination()
        page = paginator.paginate_queryset(jobs, request, view=self) or []
        return paginator.get_paginated_response([_dump(job) for job in page])


class RecipientQuietHoursView(APIView):
    """Whether a recipient is inside quiet hours and when that changes."""

    def get(self, _request, recipient_id: UUID):
        quiet_status = delivery_status_service.get_quiet_hours_status(recipient_id)
        return Response(_dump(quiet_status), status=status.HTTP_200_OK)


class DigestScheduleView(APIView):
    """Create or replace a recipient's digest schedule."""

    def post(self, request):
        """Store a digest schedule and compute its first run.

        Returns:
            200 OK with the stored schedule
            400 Bad Request if the schedule is malformed
            404 Not Found if the recipient does not exist
        """
        schedule = digest_service.configure_schedule(dict(request.data))
        return Response(_dump(schedule), status=status.HTTP_200_OK)
