"""Unit tests for the SMTP e-mail channel."""

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from order_fulfillment.core.models import NotificationChannel, NotificationMessage
from order_fulfillment.notifications.email import SmtpEmailChannel


@pytest.fixture
def channel() -> SmtpEmailChannel:
    return SmtpEmailChannel(
        host="smtp.example.com",
        port=587,
        username="apikey",
        password="secret",
        sender="boutique@example.com",
        sender_name="Ma Boutique",
    )


@pytest.fixture
def message() -> NotificationMessage:
    return NotificationMessage(
        recipient="jeanne@example.com",
        subject="Confirmation de votre commande",
        html_body="<p>Merci</p>",
        text_body="Merci",
        channel=NotificationChannel.CUSTOMER,
        reply_to="boutique@example.com",
    )


@pytest.fixture
def mock_smtp():
    with patch("order_fulfillment.notifications.email.smtplib.SMTP") as smtp_cls:
        server = MagicMock()
        smtp_cls.return_value.__enter__.return_value = server
        yield smtp_cls, server


class TestSmtpEmailChannel:
    """Tests for message formatting and delivery."""

    def test_format_message(self, channel, message):
        formatted = channel.format_message(message)

        assert formatted["To"] == "jeanne@example.com"
        assert formatted["From"] == "Ma Boutique <boutique@example.com>"
        assert formatted["Reply-To"] == "boutique@example.com"
        assert formatted["Message-ID"]
        content_types = [part.get_content_type() for part in formatted.get_payload()]
        assert content_types == ["text/plain", "text/html"]

    def test_from_settings(self, app_settings):
        channel = SmtpEmailChannel.from_settings(app_settings)
        assert channel.is_configured
        assert channel.channel_id == "smtp"

    @pytest.mark.asyncio
    async def test_send_success(self, channel, message, mock_smtp):
        smtp_cls, server = mock_smtp

        result = await channel.send(message)

        assert result.success is True
        assert result.response_id
        smtp_cls.assert_called_once_with("smtp.example.com", 587, timeout=15.0)
        server.send_message.assert_called_once()

    @pytest.mark.asyncio
    async def test_smtp_error_reported(self, channel, message, mock_smtp):
        _, server = mock_smtp
        server.send_message.side_effect = smtplib.SMTPRecipientsRefused({"jeanne@example.com": (550, b"no")})

        result = await channel.send(message)

        assert result.success is False
        assert result.error.startswith("SMTP error")

    @pytest.mark.asyncio
    async def test_connection_error_reported(self, channel, message):
        with patch(
            "order_fulfillment.notifications.email.smtplib.SMTP",
            side_effect=ConnectionRefusedError("refused"),
        ):
            result = await channel.send(message)

        assert result.success is False
        assert "refused" in result.error

    @pytest.mark.asyncio
    async def test_unconfigured_channel(self, message):
        channel = SmtpEmailChannel(host="", sender="")

        result = await channel.send(message)

        assert result.success is False
        assert "not configured" in result.error

    @pytest.mark.asyncio
    async def test_verify(self, channel, mock_smtp):
        assert await channel.verify() is True

    @pytest.mark.asyncio
    async def test_verify_failure_is_not_fatal(self, channel):
        with patch(
            "order_fulfillment.notifications.email.smtplib.SMTP",
            side_effect=smtplib.SMTPConnectError(421, "busy"),
        ):
            assert await channel.verify() is False
