"""Unit tests for URL configuration."""

from uuid import uuid4

from django.test import SimpleTestCase
from django.urls import Resolver404, resolve, reverse

from scheduling import views


class TestSchedulerURLPatterns(SimpleTestCase):
    """Tests for the scheduler API routes."""

    def test_routes_resolve_to_views(self):
        """Test every route resolves to its view."""
        job_id = uuid4()
        recipient_id = uuid4()
        routes = {
            "/api/v1/scheduler/jobs": views.NotificationJobListView,
            "/api/v1/scheduler/jobs/metrics": views.JobMetricsView,
            "/api/v1/scheduler/jobs/dispatch": views.DispatchView,
            f"/api/v1/scheduler/jobs/{job_id}": views.NotificationJobDetailView,
            f"/api/v1/scheduler/jobs/{job_id}/cancel": views.NotificationJobCancelView,
            f"/api/v1/scheduler/jobs/{job_id}/reschedule": (
                views.NotificationJobRescheduleView
            ),
            f"/api/v1/scheduler/recipients/{recipient_id}/jobs": (
                views.RecipientJobHistoryView
            ),
            f"/api/v1/scheduler/recipients/{recipient_id}/quiet-hours": (
                views.RecipientQuietHoursView
            ),
            "/api/v1/scheduler/digest-schedules": views.DigestScheduleView,
        }

        for url, view_class in routes.items():
            with self.subTest(url=url):
                self.assertEqual(resolve(url).func.view_class, view_class)

    def test_job_id_is_parsed_as_uuid(self):
        """Test path parameters are converted to UUIDs."""
        job_id = uuid4()

        resolved = resolve(f"/api/v1/scheduler/jobs/{job_id}")

        self.assertEqual(resolved.kwargs, {"job_id": job_id})

    def test_reverse_lookups(self):
        """Test named routes reverse to their paths."""
        job_id = uuid4()

        self.assertEqual(reverse("job-list"), "/api/v1/scheduler/jobs")
        self.assertEqual(
            reverse("job-cancel", kwargs={"job_id": job_id}),
            f"/api/v1/scheduler/jobs/{job_id}/cancel",
        )
        self.assertEqual(reverse("digest-schedule"), "/api/v1/scheduler/digest-schedules")

    def test_non_uuid_ids_do_not_resolve(self):
        """Test malformed ids never reach the views."""
        with self.assertRaises(Resolver404):
            resolve("/api/v1/scheduler/jobs/not-a-uuid")

    def test_unknown_url_raises_404(self):
        """Test that non-existent URLs raise Resolver404."""
        with self.assertRaises(Resolver404):
            resolve("/health/")
