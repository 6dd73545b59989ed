"""Component tests for middleware integration with Django/DRF."""

import uuid

from django.test import Client, TestCase

from scheduling.constants import REQUEST_ID_HEADER


class TestMiddlewareIntegration(TestCase):
    """Test middleware integration with actual HTTP requests."""

    def setUp(self):
        """Set up test client."""
        self.client = Client()

    def test_request_id_generated(self):
        """Test every response carries a generated request id."""
        response = self.client.get("/api/v1/scheduler/jobs/metrics")

        self.assertEqual(response.status_code, 200)
        uuid.UUID(response[REQUEST_ID_HEADER])

    def test_request_id_propagated(self):
        """Test an incoming request id is echoed back."""
        response = self.client.get(
            "/api/v1/scheduler/jobs/metrics",
            headers={REQUEST_ID_HEADER: "trace-abc"},
        )

        self.assertEqual(response[REQUEST_ID_HEADER], "trace-abc")

    def test_request_id_in_error_body(self):
        """Test error responses carry the request id in body and header."""
        response = self.client.get(
            f"/api/v1/scheduler/jobs/{uuid.uuid4()}",
            headers={REQUEST_ID_HEADER: "trace-404"},
        )

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["request_id"], "trace-404")
        self.assertEqual(response[REQUEST_ID_HEADER], "trace-404")
