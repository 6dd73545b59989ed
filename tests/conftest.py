"""Pytest configuration and shared fixtures."""

import os

import django
from django.core.cache import cache
from django.test import Client

import pytest

# Configure Django settings for tests
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "notification_scheduler.settings_test")
django.setup()


@pytest.fixture
def api_client():
    """Provide Django test client."""
    return Client()


@pytest.fixture(autouse=True)
def clear_preference_cache():
    """Start every test with an empty preference cache."""
    cache.clear()
    yield
    cache.clear()
