"""Base test classes for different test types."""

from django.core.cache import cache
from django.test import TestCase


class BaseUnitTest(TestCase):
    """Base class for unit tests.

    Use this for tests that don't require database access or use
    SQLite in-memory for fast isolated testing.
    """

    def setUp(self):
        """Set up test fixtures."""
        cache.clear()


class BaseComponentTest(TestCase):
    """Base class for component tests.

    Use this for tests that drive the API through the full Django
    request/response cycle against the SQLite in-memory database. Outbound
    transports are replaced per test.
    """

    api_prefix = "/api/v1/scheduler"

    def setUp(self):
        """Set up test fixtures and mocks."""
        cache.clear()

    def url(self, path: str) -> str:
        return f"{self.api_prefix}/{path.lstrip('/')}"
