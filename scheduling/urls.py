"""URL routing configuration for the scheduling app."""

from django.urls import path

from .views import (
    DigestScheduleView,
    DispatchView,
    JobMetricsView,
    NotificationJobCancelView,
    NotificationJobDetailView,
    NotificationJobListView,
    NotificationJobRescheduleView,
    RecipientJobHistoryView,
    RecipientQuietHoursView,
)

urlpatterns = [
    # Job endpoints
    path("jobs", NotificationJobListView.as_view(), name="job-list"),
    path("jobs/metrics", JobMetricsView.as_view(), name="job-metrics"),
    path("jobs/dispatch", DispatchView.as_view(), name="job-dispatch"),
    path("jobs/<uuid:job_id>", NotificationJobDetailView.as_view(), name="job-detail"),
    path(
        "jobs/<uuid:job_id>/cancel",
        NotificationJobCancelView.as_view(),
        name="job-cancel",
    ),
    path(
        "jobs/<uuid:job_id>/reschedule",
        NotificationJobRescheduleView.as_view(),
        name="job-reschedule",
    ),
    # Recipient endpoints
    path(
        "recipients/<uuid:recipient_id>/jobs",
        RecipientJobHistoryView.as_view(),
        name="recipient-jobs",
    ),
    path(
        "recipients/<uuid:recipient_id>/quiet-hours",
        RecipientQuietHoursView.as_view(),
        name="recipient-quiet-hours",
    ),
    # Digest schedule endpoints
    path(
        "digest-schedules",
        DigestScheduleView.as_view(),
        name="digest-schedule",
    ),
]
