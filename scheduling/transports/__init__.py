"""Delivery transports for each notification channel."""

from scheduling.transports.base import Transport
from scheduling.transports.email_transport import EmailTransport
from scheduling.transports.http_transport import HttpProviderTransport
from scheduling.transports.registry import TransportRegistry, transport_registry

__all__ = [
    "EmailTransport",
    "HttpProviderTransport",
    "Transport",
    "TransportRegistry",
    "transport_registry",
]
