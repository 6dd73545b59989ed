"""Django settings for the notification scheduling engine.

Every value can be overridden through an environment variable of the same
name. Engine tuning knobs (retry budget, backoff, debounce window, cache TTL,
transport timeout) live at the bottom of this module.
"""

import os
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "insecure-development-key")
DEBUG = _env_bool("DJANGO_DEBUG", False)
ALLOWED_HOSTS = os.getenv("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",")

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "rest_framework",
    "django_rq",
    "scheduling",
]

MIDDLEWARE = [
    "scheduling.middleware.RequestIDMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "notification_scheduler.urls"
WSGI_APPLICATION = "notification_scheduler.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": os.getenv("POSTGRES_DB", "family_updates"),
        "USER": os.getenv("POSTGRES_USER", "postgres"),
        "PASSWORD": os.getenv("POSTGRES_PASSWORD", ""),
        "HOST": os.getenv("POSTGRES_HOST", "localhost"),
        "PORT": os.getenv("POSTGRES_PORT", "5432"),
        "CONN_MAX_AGE": 60,
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.redis.RedisCache",
        "LOCATION": os.getenv("REDIS_URL", "redis://localhost:6379/1"),
    }
}

RQ_QUEUES = {
    "default": {
        "URL": os.getenv("RQ_REDIS_URL", "redis://localhost:6379/0"),
        "DEFAULT_TIMEOUT": 300,
    }
}

# All persisted instants are stored in UTC.
USE_TZ = True
TIME_ZONE = "UTC"
LANGUAGE_CODE = "en-us"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
    "EXCEPTION_HANDLER": "scheduling.exceptions.custom_exception_handler",
    "UNAUTHENTICATED_USER": None,
}

# Logging (structlog, see scheduling.logging.config)
LOG_FILE_PATH = os.getenv("LOG_FILE_PATH", "./logs/notification-scheduler.log")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
SERVICE_NAME = os.getenv("SERVICE_NAME", "notification-scheduler")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
TEST_MODE = False

# SMTP transport
EMAIL_HOST = os.getenv("EMAIL_HOST", "localhost")
EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
EMAIL_HOST_USER = os.getenv("EMAIL_HOST_USER", "")
EMAIL_HOST_PASSWORD = os.getenv("EMAIL_HOST_PASSWORD", "")
EMAIL_USE_TLS = _env_bool("EMAIL_USE_TLS", True)
DEFAULT_FROM_EMAIL = os.getenv("DEFAULT_FROM_EMAIL", "updates@example.com")

# HTTP provider transports (sms, whatsapp, push)
SMS_PROVIDER_URL = os.getenv("SMS_PROVIDER_URL", "")
WHATSAPP_PROVIDER_URL = os.getenv("WHATSAPP_PROVIDER_URL", "")
PUSH_PROVIDER_URL = os.getenv("PUSH_PROVIDER_URL", "")
PROVIDER_API_KEY = os.getenv("PROVIDER_API_KEY", "")

# Scheduling engine
NOTIFICATION_MAX_RETRIES = int(os.getenv("NOTIFICATION_MAX_RETRIES", "3"))
NOTIFICATION_RETRY_BASE_SECONDS = int(os.getenv("NOTIFICATION_RETRY_BASE_SECONDS", "60"))
NOTIFICATION_RETRY_MAX_DELAY_SECONDS = int(
    os.getenv("NOTIFICATION_RETRY_MAX_DELAY_SECONDS", "3600")
)
NOTIFICATION_DEBOUNCE_SECONDS = int(os.getenv("NOTIFICATION_DEBOUNCE_SECONDS", "300"))
NOTIFICATION_DISPATCH_BATCH_SIZE = int(os.getenv("NOTIFICATION_DISPATCH_BATCH_SIZE", "100"))
NOTIFICATION_DISPATCH_INTERVAL_SECONDS = float(
    os.getenv("NOTIFICATION_DISPATCH_INTERVAL_SECONDS", "10")
)
NOTIFICATION_PROCESSING_LEASE_SECONDS = int(
    os.getenv("NOTIFICATION_PROCESSING_LEASE_SECONDS", "600")
)
TRANSPORT_TIMEOUT_SECONDS = float(os.getenv("TRANSPORT_TIMEOUT_SECONDS", "10"))
PREFERENCE_CACHE_TTL_SECONDS = int(os.getenv("PREFERENCE_CACHE_TTL_SECONDS", "900"))
DIGEST_COMPILER = os.getenv(
    "DIGEST_COMPILER", "scheduling.services.digest_service.build_digest_content"
)
NOTIFICATION_MAINTENANCE_INTERVAL_SECONDS = float(
    os.getenv("NOTIFICATION_MAINTENANCE_INTERVAL_SECONDS", "60")
)
NOTIFICATION_MAX_BACKOFF_SECONDS = float(
    os.getenv("NOTIFICATION_MAX_BACKOFF_SECONDS", "300")
)
RQ_DISPATCH_QUEUE = os.getenv("RQ_DISPATCH_QUEUE", "default")
