"""Transport interface shared by every delivery channel."""

from abc import ABC, abstractmethod

from scheduling.schemas import DeliveryRequest


class Transport(ABC):
    """Delivers one notification through one channel.

    Implementations return the provider's message id on success and raise
    ``TransientDeliveryError`` for failures worth retrying or
    ``PermanentDeliveryError`` for failures that never will succeed.
    """

    delivery_method: str

    @abstractmethod
    def send(self, delivery: DeliveryRequest, timeout: float) -> str:
        """Deliver ``delivery`` within ``timeout`` seconds and return a message id."""
