"""HTTP provider transport for sms, whatsapp and push delivery."""

from typing import Any

from django.conf import settings

import requests
import structlog

from scheduling.exceptions import PermanentDeliveryError, TransientDeliveryError
from scheduling.logging.context import get_request_id
from scheduling.schemas import DeliveryRequest
from scheduling.transports.base import Transport

logger = structlog.get_logger(__name__)

# Provider answers that are worth retrying even though they are 4xx.
RETRYABLE_CLIENT_STATUSES = {408, 425, 429}


class HttpProviderTransport(Transport):
    """Posts a delivery to a provider webhook.

    The provider receives ``{to, channel, job_id, notification_type,
    urgency, content}`` and is expected to answer 2xx with a JSON body
    containing ``message_id`` (or ``id``). Timeouts, connection errors and
    5xx answers are transient; other 4xx answers are permanent.
    """

    def __init__(
        self,
        delivery_method: str,
        url_setting: str,
        session: requests.Session | None = None,
    ):
        """Initialize the provider transport.

        Args:
            delivery_method: Channel served by this provider
            url_setting: Name of the Django setting holding the provider URL
            session: Optional requests session (a new one by default)
        """
        self.delivery_method = delivery_method
        self.url_setting = url_setting
        self.session = session or requests.Session()

    @property
    def url(self) -> str:
        return getattr(settings, self.url_setting, "")

    def _get_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        api_key = getattr(settings, "PROVIDER_API_KEY", "")
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        request_id = get_request_id()
        if request_id:
            headers["X-Request-ID"] = request_id
        return headers

    def send(self, delivery: DeliveryRequest, timeout: float) -> str:
        if not self.url:
            raise PermanentDeliveryError(
                f"No provider configured for {self.delivery_method}",
                delivery_method=self.delivery_method,
            )

        payload: dict[str, Any] = {
            "to": delivery.address,
            "channel": self.delivery_method,
            "job_id": str(delivery.job_id),
            "notification_type": delivery.notification_type,
            "urgency": delivery.urgency_level,
            "content": delivery.content,
        }

        try:
            response = self.session.post(
                self.url, json=payload, headers=self._get_headers(), timeout=timeout
            )
        except requests.Timeout as e:
            logger.warning(
                "provider_request_timed_out",
                channel=self.delivery_method,
                job_id=str(delivery.job_id),
                timeout=timeout,
            )
            raise TransientDeliveryError(
                f"{self.delivery_method} provider timed out after {timeout}s",
                delivery_method=self.delivery_method,
            ) from e
        except requests.RequestException as e:
            logger.warning(
                "provider_request_failed",
                channel=self.delivery_method,
                job_id=str(delivery.job_id),
                error=str(e),
            )
            raise TransientDeliveryError(
                f"{self.delivery_method} provider unreachable: {e}",
                delivery_method=self.delivery_method,
            ) from e

        status_code = response.status_code
        if status_code >= 500 or status_code in RETRYABLE_CLIENT_STATUSES:
            raise TransientDeliveryError(
                f"{self.delivery_method} provider returned {status_code}",
                delivery_method=self.delivery_method,
                status_code=status_code,
            )
        if status_code >= 400:
            raise PermanentDeliveryError(
                f"{self.delivery_method} provider rejected delivery "
                f"({status_code}): {response.text[:200]}",
                delivery_method=self.delivery_method,
                status_code=status_code,
            )

        message_id = self._message_id(response)
        logger.info(
            "provider_delivery_accepted",
            channel=self.delivery_method,
            job_id=str(delivery.job_id),
            message_id=message_id,
        )
        return message_id

    @staticmethod
    def _message_id(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if isinstance(body, dict):
            message_id = body.get("message_id") or body.get("id")
            if message_id:
                return str(message_id)
        return response.headers.get("X-Message-ID", "")
