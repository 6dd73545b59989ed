"""Component tests for POST /digest-schedules."""

from uuid import uuid4

from scheduling.models import DigestSchedule
from tests.base import BaseComponentTest
from tests.factories.models import create_recipient


class TestDigestScheduleEndpoint(BaseComponentTest):
    """Component tests for creating and replacing digest schedules."""

    def setUp(self):
        """Set up test fixtures."""
        super().setUp()
        self.recipient = create_recipient(timezone="Europe/London")

    def _post(self, body):
        return self.client.post(
            self.url("digest-schedules"), data=body, content_type="application/json"
        )

    def test_create_weekly_schedule(self):
        """Test a weekly schedule is stored with its first run."""
        response = self._post(
            {
                "recipientId": str(self.recipient.id),
                "frequency": "weekly",
                "deliveryDay": "Sunday",
                "deliveryTime": "18:00",
                "timezone": "Europe/London",
                "includeContentTypes": ["photos"],
            }
        )

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["deliveryDay"], "sunday")
        self.assertEqual(data["deliveryTime"], "18:00:00")
        self.assertEqual(data["groupId"], str(self.recipient.group_id))
        self.assertTrue(data["isActive"])
        self.assertIsNotNone(data["nextDigestScheduled"])
        self.assertEqual(data["includeContentTypes"], ["photos"])

    def test_post_replaces_existing_schedule(self):
        """Test posting the same frequency again replaces the schedule."""
        body = {
            "recipientId": str(self.recipient.id),
            "frequency": "daily",
            "deliveryTime": "08:00",
        }
        self._post(body)
        body["deliveryTime"] = "20:15"

        response = self._post(body)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(DigestSchedule.objects.filter(recipient=self.recipient).count(), 1)
        self.assertEqual(response.json()["deliveryTime"], "20:15:00")

    def test_invalid_schedule_returns_400(self):
        """Test malformed schedules return details and store nothing."""
        response = self._post(
            {
                "recipientId": str(self.recipient.id),
                "frequency": "monthly",
                "deliveryDay": "31",
                "deliveryTime": "08:00",
            }
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn("__root__", response.json()["details"])
        self.assertFalse(DigestSchedule.objects.exists())

    def test_unknown_recipient_returns_404(self):
        """Test schedules for unknown recipients return 404."""
        response = self._post(
            {"recipientId": str(uuid4()), "frequency": "daily", "deliveryTime": "08:00"}
        )

        self.assertEqual(response.status_code, 404)
