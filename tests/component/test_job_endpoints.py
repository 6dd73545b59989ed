"""Component tests for the notification job endpoints.

These drive /api/v1/scheduler/jobs through the full Django request/response
cycle against the in-memory database. Outbound delivery is replaced by a
recording transport.
"""

from datetime import timedelta
from unittest.mock import patch
from uuid import uuid4

from django.utils import timezone

from scheduling.enums import JobStatus
from scheduling.services.notification_job_queue import notification_job_queue
from scheduling.transports import TransportRegistry
from tests.base import BaseComponentTest
from tests.factories.models import create_job, create_recipient
from tests.fakes import RecordingTransport


class TestEnqueueEndpoint(BaseComponentTest):
    """Component tests for POST /jobs."""

    def setUp(self):
        """Set up test fixtures."""
        super().setUp()
        self.recipient = create_recipient()

    def _post(self, body):
        return self.client.post(self.url("jobs"), data=body, content_type="application/json")

    def test_enqueue_returns_201(self):
        """Test a valid request creates a pending job."""
        update_id = str(uuid4())

        response = self._post(
            {
                "recipientId": str(self.recipient.id),
                "updateId": update_id,
                "notificationType": "immediate",
                "content": {"subject": "New photos"},
            }
        )

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data["recipientId"], str(self.recipient.id))
        self.assertEqual(data["groupId"], str(self.recipient.group_id))
        self.assertEqual(data["updateId"], update_id)
        self.assertEqual(data["status"], "pending")
        self.assertEqual(data["deliveryMethod"], "email")
        self.assertEqual(data["maxRetries"], 3)

    def test_scheduled_for_is_ignored(self):
        """Test clients cannot pin the delivery instant."""
        response = self._post(
            {
                "recipientId": str(self.recipient.id),
                "notificationType": "immediate",
                "scheduledFor": "2030-01-01T00:00:00Z",
            }
        )

        self.assertEqual(response.status_code, 201)
        self.assertFalse(response.json()["scheduledFor"].startswith("2030"))

    def test_malformed_request_returns_400(self):
        """Test malformed requests return field details."""
        response = self._post(
            {"recipientId": str(self.recipient.id), "notificationType": "sometimes"}
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn("notificationType", response.json()["details"])

    def test_unknown_recipient_returns_404(self):
        """Test unknown recipients return 404."""
        response = self._post(
            {"recipientId": str(uuid4()), "notificationType": "immediate"}
        )

        self.assertEqual(response.status_code, 404)

    def test_inactive_recipient_returns_400(self):
        """Test inactive recipients are rejected and nothing is stored."""
        recipient = create_recipient(is_active=False)

        response = self._post(
            {"recipientId": str(recipient.id), "notificationType": "immediate"}
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn("inactive", response.json()["message"])


class TestJobDetailEndpoints(BaseComponentTest):
    """Component tests for job detail, cancel and reschedule."""

    def setUp(self):
        """Set up test fixtures."""
        super().setUp()
        self.recipient = create_recipient()
        self.job = create_job(self.recipient, scheduled_for=timezone.now() + timedelta(hours=1))

    def test_get_job(self):
        """Test a job is returned with its attempts."""
        response = self.client.get(self.url(f"jobs/{self.job.id}"))

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["id"], str(self.job.id))
        self.assertEqual(data["attempts"], [])

    def test_get_unknown_job_returns_404(self):
        """Test unknown jobs return 404."""
        response = self.client.get(self.url(f"jobs/{uuid4()}"))

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["status"], 404)

    def test_cancel_then_conflict(self):
        """Test a pending job can be cancelled once."""
        first = self.client.post(self.url(f"jobs/{self.job.id}/cancel"))
        second = self.client.post(self.url(f"jobs/{self.job.id}/cancel"))

        self.assertEqual(first.status_code, 200)
        self.assertEqual(first.json()["status"], "cancelled")
        self.assertEqual(second.status_code, 409)
        self.assertEqual(second.json()["details"], {"detail": "Job is cancelled"})

    def test_reschedule(self):
        """Test a pending job can be moved."""
        response = self.client.post(
            self.url(f"jobs/{self.job.id}/reschedule"),
            data={"scheduledFor": "2030-06-01T09:30:00Z"},
            content_type="application/json",
        )

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["scheduledFor"].startswith("2030-06-01T09:30:00"))

    def test_reschedule_validation(self):
        """Test missing or naive instants are rejected."""
        for body in ({}, {"scheduledFor": "2030-06-01T09:30:00"}):
            with self.subTest(body=body):
                response = self.client.post(
                    self.url(f"jobs/{self.job.id}/reschedule"),
                    data=body,
                    content_type="application/json",
                )

                self.assertEqual(response.status_code, 400)
                self.assertIn("scheduledFor", response.json()["details"])

    def test_reschedule_sent_job_conflicts(self):
        """Test finished jobs cannot be rescheduled."""
        sent = create_job(self.recipient, status=JobStatus.SENT.value)

        response = self.client.post(
            self.url(f"jobs/{sent.id}/reschedule"),
            data={"scheduledFor": "2030-06-01T09:30:00Z"},
            content_type="application/json",
        )

        self.assertEqual(response.status_code, 409)


class TestDispatchAndMetricsEndpoints(BaseComponentTest):
    """Component tests for on-demand dispatch and metrics."""

    def setUp(self):
        """Set up test fixtures."""
        super().setUp()
        self.transport = RecordingTransport()
        registry = TransportRegistry(
            {method: self.transport for method in ("email", "sms", "whatsapp", "push")}
        )
        patcher = patch.object(notification_job_queue, "transports", registry)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.recipient = create_recipient()

    def test_dispatch_delivers_due_jobs(self):
        """Test a dispatch sweep delivers due jobs and records the attempt."""
        due = create_job(self.recipient, scheduled_for=timezone.now() - timedelta(minutes=1))
        future = create_job(self.recipient, scheduled_for=timezone.now() + timedelta(hours=1))

        response = self.client.post(self.url("jobs/dispatch"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["sent"], 1)
        self.assertEqual(len(self.transport.deliveries), 1)
        self.assertEqual(self.transport.deliveries[0].job_id, due.id)

        detail = self.client.get(self.url(f"jobs/{due.id}")).json()
        self.assertEqual(detail["status"], "sent")
        self.assertEqual(detail["messageId"], "msg-1")
        self.assertEqual(len(detail["attempts"]), 1)
        self.assertEqual(
            self.client.get(self.url(f"jobs/{future.id}")).json()["status"], "pending"
        )

    def test_metrics(self):
        """Test metrics reflect delivered and pending jobs."""
        create_job(self.recipient, scheduled_for=timezone.now() - timedelta(minutes=1))
        create_job(self.recipient, scheduled_for=timezone.now() + timedelta(hours=1))
        self.client.post(self.url("jobs/dispatch"))

        response = self.client.get(self.url("jobs/metrics"))

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["totalJobs"], 2)
        self.assertEqual(data["statusBreakdown"], {"sent": 1, "pending": 1})
        self.assertEqual(data["successRate"], 1.0)
        self.assertEqual(data["dueBacklog"], 0)
