"""Tests for EmailTransport."""

import smtplib
from unittest.mock import MagicMock, patch
from uuid import uuid4

from django.test import TestCase, override_settings

from scheduling.exceptions import PermanentDeliveryError, TransientDeliveryError
from scheduling.schemas import DeliveryRequest
from scheduling.transports.email_transport import EmailTransport


def email_delivery(**kwargs):
    values = {
        "job_id": uuid4(),
        "recipient_id": uuid4(),
        "recipient_name": "Grandma Rose",
        "address": "rose@example.com",
        "delivery_method": "email",
        "notification_type": "immediate",
        "urgency_level": "normal",
        "content": {"subject": "New photos", "html": "<p>Look at <b>this</b></p>"},
    }
    values.update(kwargs)
    return DeliveryRequest(**values)


@override_settings(
    EMAIL_HOST="smtp.test",
    EMAIL_PORT=2525,
    EMAIL_HOST_USER="mailer",
    EMAIL_HOST_PASSWORD="secret",
    EMAIL_USE_TLS=True,
    DEFAULT_FROM_EMAIL="updates@family.test",
)
class TestEmailTransport(TestCase):
    """Test suite for EmailTransport."""

    def setUp(self):
        """Set up test fixtures."""
        self.transport = EmailTransport()

    @patch("scheduling.transports.email_transport.smtplib.SMTP")
    def test_send_success(self, mock_smtp_class):
        """Test successful delivery returns the generated message id."""
        mock_smtp = MagicMock()
        mock_smtp_class.return_value.__enter__.return_value = mock_smtp

        message_id = self.transport.send(email_delivery(), timeout=5)

        mock_smtp_class.assert_called_once_with("smtp.test", 2525, timeout=5)
        mock_smtp.starttls.assert_called_once()
        mock_smtp.login.assert_called_once_with("mailer", "secret")
        sent = mock_smtp.send_message.call_args[0][0]
        self.assertEqual(sent["Message-ID"], message_id)
        self.assertEqual(sent["To"], "rose@example.com")
        self.assertEqual(sent["From"], "updates@family.test")
        self.assertEqual(sent["Subject"], "New photos")
        self.assertIn("@family.test>", message_id)

    @patch("scheduling.transports.email_transport.smtplib.SMTP")
    def test_plain_text_derived_from_html(self, mock_smtp_class):
        """Test the plain part strips markup from the html part."""
        mock_smtp = MagicMock()
        mock_smtp_class.return_value.__enter__.return_value = mock_smtp

        self.transport.send(email_delivery(), timeout=5)

        sent = mock_smtp.send_message.call_args[0][0]
        plain, html = sent.get_payload()
        self.assertEqual(plain.get_payload(), "Look at this")
        self.assertEqual(html.get_payload(), "<p>Look at <b>this</b></p>")

    @patch("scheduling.transports.email_transport.smtplib.SMTP")
    def test_default_subject_uses_recipient_name(self, mock_smtp_class):
        """Test a missing subject falls back to the notification type default."""
        mock_smtp = MagicMock()
        mock_smtp_class.return_value.__enter__.return_value = mock_smtp

        self.transport.send(email_delivery(content={"text": "hello"}), timeout=5)

        sent = mock_smtp.send_message.call_args[0][0]
        self.assertEqual(sent["Subject"], "New update from Grandma Rose's family")

    @override_settings(EMAIL_USE_TLS=False, EMAIL_HOST_USER="")
    @patch("scheduling.transports.email_transport.smtplib.SMTP")
    def test_no_tls_no_login(self, mock_smtp_class):
        """Test TLS and login are skipped when not configured."""
        mock_smtp = MagicMock()
        mock_smtp_class.return_value.__enter__.return_value = mock_smtp

        EmailTransport().send(email_delivery(), timeout=5)

        mock_smtp.starttls.assert_not_called()
        mock_smtp.login.assert_not_called()

    def test_invalid_address_is_permanent(self):
        """Test an invalid address fails without contacting the server."""
        with patch("scheduling.transports.email_transport.smtplib.SMTP") as mock_smtp:
            with self.assertRaisesRegex(PermanentDeliveryError, "Invalid email address"):
                self.transport.send(email_delivery(address="not-an-email"), timeout=5)

        mock_smtp.assert_not_called()

    def test_refused_recipient_is_permanent(self):
        """Test refused recipients are permanent failures."""
        with patch("scheduling.transports.email_transport.smtplib.SMTP") as mock_smtp:
            mock_smtp.return_value.__enter__.return_value.send_message.side_effect = (
                smtplib.SMTPRecipientsRefused({"rose@example.com": (550, b"no")})
            )

            with self.assertRaises(PermanentDeliveryError):
                self.transport.send(email_delivery(), timeout=5)

    def test_5xx_reply_is_permanent(self):
        """Test SMTP 5xx replies are permanent failures."""
        with patch("scheduling.transports.email_transport.smtplib.SMTP") as mock_smtp:
            mock_smtp.return_value.__enter__.return_value.send_message.side_effect = (
                smtplib.SMTPDataError(554, b"rejected")
            )

            with self.assertRaises(PermanentDeliveryError) as ctx:
                self.transport.send(email_delivery(), timeout=5)

        self.assertEqual(ctx.exception.status_code, 554)

    def test_4xx_reply_is_transient(self):
        """Test SMTP 4xx replies are retried."""
        with patch("scheduling.transports.email_transport.smtplib.SMTP") as mock_smtp:
            mock_smtp.return_value.__enter__.return_value.send_message.side_effect = (
                smtplib.SMTPDataError(451, b"try later")
            )

            with self.assertRaises(TransientDeliveryError) as ctx:
                self.transport.send(email_delivery(), timeout=5)

        self.assertEqual(ctx.exception.status_code, 451)

    def test_connection_failure_is_transient(self):
        """Test timeouts and dropped connections are retried."""
        for error in (TimeoutError("timed out"), smtplib.SMTPServerDisconnected("gone")):
            with self.subTest(error=error):
                with patch(
                    "scheduling.transports.email_transport.smtplib.SMTP",
                    side_effect=error,
                ):
                    with self.assertRaises(TransientDeliveryError):
                        self.transport.send(email_delivery(), timeout=5)
