"""Middleware components for the scheduling API."""

from scheduling.middleware.request_id import RequestIDMiddleware

__all__ = ["RequestIDMiddleware"]
