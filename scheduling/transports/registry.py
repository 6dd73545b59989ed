"""Lookup of the transport serving each delivery method."""

from scheduling.enums import DeliveryMethod
from scheduling.exceptions import PermanentDeliveryError
from scheduling.transports.base import Transport
from scheduling.transports.email_transport import EmailTransport
from scheduling.transports.http_transport import HttpProviderTransport


class TransportRegistry:
    """Maps delivery methods to transports.

    Default transports are created on first use so settings are read after
    Django is configured.
    """

    def __init__(self, transports: dict[str, Transport] | None = None) -> None:
        self._transports = dict(transports) if transports is not None else None

    def _defaults(self) -> dict[str, Transport]:
        return {
            DeliveryMethod.EMAIL.value: EmailTransport(),
            DeliveryMethod.SMS.value: HttpProviderTransport(
                DeliveryMethod.SMS.value, "SMS_PROVIDER_URL"
            ),
            DeliveryMethod.WHATSAPP.value: HttpProviderTransport(
                DeliveryMethod.WHATSAPP.value, "WHATSAPP_PROVIDER_URL"
            ),
            DeliveryMethod.PUSH.value: HttpProviderTransport(
                DeliveryMethod.PUSH.value, "PUSH_PROVIDER_URL"
            ),
        }

    def register(self, delivery_method: str, transport: Transport) -> None:
        if self._transports is None:
            self._transports = self._defaults()
        self._transports[DeliveryMethod(delivery_method).value] = transport

    def get(self, delivery_method: str) -> Transport:
        """Return the transport for a channel.

        Raises:
            PermanentDeliveryError: If no transport serves the channel
        """
        if self._transports is None:
            self._transports = self._defaults()
        transport = self._transports.get(DeliveryMethod(delivery_method).value)
        if transport is None:
            raise PermanentDeliveryError(
                f"No transport registered for {delivery_method}",
                delivery_method=delivery_method,
            )
        return transport


transport_registry = TransportRegistry()
