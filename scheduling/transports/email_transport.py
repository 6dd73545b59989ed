"""Email transport over SMTP."""

import re
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid

from django.conf import settings

import structlog

from scheduling.enums import DeliveryMethod, NotificationType
from scheduling.exceptions import PermanentDeliveryError, TransientDeliveryError
from scheduling.schemas import DeliveryRequest
from scheduling.transports.base import Transport

logger = structlog.get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

DEFAULT_SUBJECTS = {
    NotificationType.IMMEDIATE.value: "New update from {recipient_name}'s family",
    NotificationType.MILESTONE.value: "A new milestone to celebrate",
    NotificationType.DIGEST.value: "Your family update digest",
}


class EmailTransport(Transport):
    """Sends notification emails via SMTP.

    Job content may carry ``subject``, ``html`` and ``text``; missing parts
    are derived from each other. SMTP reply codes in the 5xx range and
    refused recipients are permanent, everything else (timeouts, dropped
    connections, 4xx replies) is transient.
    """

    delivery_method = DeliveryMethod.EMAIL.value

    def __init__(self) -> None:
        """Initialize email transport with SMTP configuration."""
        self.smtp_host = settings.EMAIL_HOST
        self.smtp_port = settings.EMAIL_PORT
        self.smtp_user = settings.EMAIL_HOST_USER
        self.smtp_password = settings.EMAIL_HOST_PASSWORD
        self.use_tls = settings.EMAIL_USE_TLS
        self.from_email = settings.DEFAULT_FROM_EMAIL

    def send(self, delivery: DeliveryRequest, timeout: float) -> str:
        if not self._is_valid_email(delivery.address):
            raise PermanentDeliveryError(
                f"Invalid email address: {delivery.address}",
                delivery_method=self.delivery_method,
            )

        message_id = make_msgid(domain=self.from_email.rpartition("@")[2] or None)
        msg = self._build_message(delivery, message_id)

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg)
        except smtplib.SMTPRecipientsRefused as e:
            raise PermanentDeliveryError(
                f"Recipient refused: {delivery.address}",
                delivery_method=self.delivery_method,
            ) from e
        except smtplib.SMTPResponseException as e:
            error = f"SMTP {e.smtp_code}: {e.smtp_error!r}"
            if e.smtp_code >= 500:
                raise PermanentDeliveryError(
                    error, delivery_method=self.delivery_method, status_code=e.smtp_code
                ) from e
            raise TransientDeliveryError(
                error, delivery_method=self.delivery_method, status_code=e.smtp_code
            ) from e
        except (smtplib.SMTPException, OSError) as e:
            raise TransientDeliveryError(
                f"SMTP delivery failed: {e}", delivery_method=self.delivery_method
            ) from e

        logger.info(
            "email_sent",
            job_id=str(delivery.job_id),
            to_email=delivery.address,
            message_id=message_id,
        )
        return message_id

    def _build_message(self, delivery: DeliveryRequest, message_id: str) -> MIMEMultipart:
        content = delivery.content
        subject = content.get("subject") or DEFAULT_SUBJECTS.get(
            delivery.notification_type, "Family update"
        ).format(recipient_name=delivery.recipient_name)
        html_content = content.get("html") or content.get("body") or ""
        plain_content = content.get("text") or self._html_to_plain(html_content)
        if not html_content:
            html_content = f"<p>{plain_content}</p>"

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_email
        msg["To"] = delivery.address
        msg["Message-ID"] = message_id
        msg.attach(MIMEText(plain_content, "plain"))
        msg.attach(MIMEText(html_content, "html"))
        return msg

    @staticmethod
    def _is_valid_email(email: str) -> bool:
        return bool(EMAIL_PATTERN.match(email or ""))

    @staticmethod
    def _html_to_plain(html: str) -> str:
        text = re.sub(r"<[^>]+>", "", html)
        for entity, char in (
            ("&nbsp;", " "),
            ("&lt;", "<"),
            ("&gt;", ">"),
            ("&quot;", '"'),
            ("&amp;", "&"),
        ):
            text = text.replace(entity, char)
        return re.sub(r"\n\s*\n", "\n\n", text).strip()
