"""Email notification channel: sends order e-mails via SMTP.

smtplib is blocking, so every SMTP conversation runs in a worker thread.
One channel instance is built at startup and shared by all requests; it holds
configuration only, each send opens its own SMTP connection.
"""

import asyncio
import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid
from typing import Protocol

from order_fulfillment.config import Settings
from order_fulfillment.core.models import NotificationChannel, NotificationMessage

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    """Result of sending a notification."""

    success: bool
    channel_id: str
    error: str = ""
    response_id: str = ""  # Message-ID header of the sent e-mail


class EmailChannel(Protocol):
    """Anything that can deliver a rendered NotificationMessage."""

    @property
    def channel_id(self) -> str:
        ...

    async def send(self, message: NotificationMessage) -> SendResult:
        ...


class SmtpEmailChannel:
    """Email notification channel via SMTP."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        sender: str = "",
        sender_name: str = "",
        use_tls: bool = True,
        timeout: float = 15.0,
        channel_id: str = "smtp",
    ):
        self._channel_id = channel_id
        self._host = host
        self._port = port
        self._user = username
        self._password = password
        self._from = sender
        self._from_name = sender_name
        self._use_tls = use_tls
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpEmailChannel":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_password,
            sender=settings.email_sender,
            sender_name=settings.shop_name,
            use_tls=settings.smtp_use_tls,
            timeout=settings.smtp_timeout_seconds,
        )

    @property
    def channel_id(self) -> str:
        return self._channel_id

    @property
    def is_configured(self) -> bool:
        return bool(self._host and self._from)

    def format_message(self, message: NotificationMessage) -> MIMEMultipart:
        """Format as MIME email message with plain-text and HTML parts."""
        msg = MIMEMultipart("alternative")
        msg["Subject"] = message.subject
        msg["From"] = formataddr((self._from_name, self._from)) if self._from_name else self._from
        msg["To"] = message.recipient
        msg["Message-ID"] = make_msgid()
        if message.reply_to:
            msg["Reply-To"] = message.reply_to

        if message.text_body:
            msg.attach(MIMEText(message.text_body, "plain", "utf-8"))
        msg.attach(MIMEText(message.html_body, "html", "utf-8"))
        return msg

    def _connect(self) -> smtplib.SMTP:
        if self._port == 465:
            server: smtplib.SMTP = smtplib.SMTP_SSL(self._host, self._port, timeout=self._timeout)
        else:
            server = smtplib.SMTP(self._host, self._port, timeout=self._timeout)
            if self._use_tls:
                server.starttls()
        if self._user and self._password:
            server.login(self._user, self._password)
        return server

    def _deliver(self, formatted: MIMEMultipart) -> None:
        with self._connect() as server:
            server.send_message(formatted)

    def _check_connection(self) -> None:
        with self._connect() as server:
            server.noop()

    async def send(self, message: NotificationMessage) -> SendResult:
        """Send via SMTP. Delivery problems are reported in the result, never raised."""
        if not self.is_configured:
            return SendResult(
                success=False,
                channel_id=self._channel_id,
                error="Email not configured (missing SMTP_HOST/EMAIL_SENDER)",
            )

        formatted = self.format_message(message)
        try:
            await asyncio.to_thread(self._deliver, formatted)
        except smtplib.SMTPException as e:
            return SendResult(
                success=False,
                channel_id=self._channel_id,
                error=f"SMTP error: {e}",
            )
        except OSError as e:
            return SendResult(
                success=False,
                channel_id=self._channel_id,
                error=f"Connection error: {e}",
            )

        return SendResult(
            success=True,
            channel_id=self._channel_id,
            response_id=formatted["Message-ID"],
        )

    async def verify(self) -> bool:
        """Open and close an SMTP session to check credentials; logs the outcome."""
        if not self.is_configured:
            logger.warning("SMTP not configured, e-mail notifications disabled")
            return False
        try:
            await asyncio.to_thread(self._check_connection)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP verify failed for %s:%d: %s", self._host, self._port, e)
            return False
        logger.info("SMTP ready (%s:%d)", self._host, self._port)
        return True

    async def send_test_message(self, recipient: str) -> SendResult:
        """Send a short smoke-test e-mail to ``recipient``."""
        message = NotificationMessage(
            recipient=recipient,
            subject="Test e-mail",
            text_body="This is a test message from the order fulfillment service.",
            html_body="<b>This is a test message from the order fulfillment service.</b>",
            channel=NotificationChannel.OPERATOR,
        )
        return await self.send(message)
