"""Customer receipt and operator alert dispatch."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from order_fulfillment.config import Settings
from order_fulfillment.core.models import NotificationChannel, NotificationMessage, Order
from order_fulfillment.notifications.email import EmailChannel
from order_fulfillment.notifications.templates import render_customer_receipt, render_operator_alert

logger = logging.getLogger(__name__)


class NotificationStatus(str, Enum):
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class NotificationOutcome:
    channel: NotificationChannel
    status: NotificationStatus
    recipient: str = ""
    error: str = ""
    message_id: str = ""


@dataclass
class DispatchResult:
    customer: NotificationOutcome
    operator: NotificationOutcome


class NotificationDispatcher:
    """
    Sends the two order e-mails independently of each other.

    Each message is rendered, sent once and its outcome recorded. Failures
    and timeouts are logged and reported in the result; nothing is retried
    and nothing is raised, because by the time this runs the order is
    already committed.
    """

    def __init__(self, channel: EmailChannel, settings: Settings):
        self._channel = channel
        self._settings = settings

    def build_customer_message(self, order: Order) -> NotificationMessage | None:
        if not order.customer_email:
            return None
        html_body, text_body = render_customer_receipt(order, self._settings)
        return NotificationMessage(
            recipient=order.customer_email,
            subject="Confirmation de votre commande",
            html_body=html_body,
            text_body=text_body,
            channel=NotificationChannel.CUSTOMER,
            reply_to=self._settings.email_sender or None,
        )

    def build_operator_message(self, order: Order) -> NotificationMessage | None:
        recipient = self._settings.operator_recipient
        if not recipient:
            return None
        html_body, text_body = render_operator_alert(order, self._settings)
        return NotificationMessage(
            recipient=recipient,
            subject=f"Nouvelle commande n°{order.id}",
            html_body=html_body,
            text_body=text_body,
            channel=NotificationChannel.OPERATOR,
        )

    async def _send(
        self,
        channel: NotificationChannel,
        build: Callable[[Order], NotificationMessage | None],
        order: Order,
    ) -> NotificationOutcome:
        try:
            message = build(order)
        except Exception as e:
            logger.error(
                "Failed to render %s e-mail for order %s: %s",
                channel.value,
                order.id,
                str(e),
                exc_info=True,
            )
            return NotificationOutcome(
                channel=channel,
                status=NotificationStatus.FAILED,
                error=f"render failed: {e}",
            )

        if message is None:
            logger.warning(
                "No %s e-mail address for order %s, %s e-mail not sent",
                channel.value,
                order.id,
                channel.value,
            )
            return NotificationOutcome(channel=channel, status=NotificationStatus.SKIPPED)

        logger.info("Sending %s e-mail for order %s to %s", channel.value, order.id, message.recipient)
        try:
            result = await asyncio.wait_for(
                self._channel.send(message),
                timeout=self._settings.notification_timeout_seconds,
            )
        except TimeoutError:
            logger.error(
                "Timed out sending %s e-mail for order %s after %.1fs",
                channel.value,
                order.id,
                self._settings.notification_timeout_seconds,
            )
            return NotificationOutcome(
                channel=channel,
                status=NotificationStatus.FAILED,
                recipient=message.recipient,
                error="timeout",
            )
        except Exception as e:
            logger.error(
                "Unexpected error sending %s e-mail for order %s: %s",
                channel.value,
                order.id,
                str(e),
                exc_info=True,
            )
            return NotificationOutcome(
                channel=channel,
                status=NotificationStatus.FAILED,
                recipient=message.recipient,
                error=str(e),
            )

        if not result.success:
            logger.error("Failed to send %s e-mail for order %s: %s", channel.value, order.id, result.error)
            return NotificationOutcome(
                channel=channel,
                status=NotificationStatus.FAILED,
                recipient=message.recipient,
                error=result.error,
            )

        logger.info("Sent %s e-mail for order %s (id=%s)", channel.value, order.id, result.response_id)
        return NotificationOutcome(
            channel=channel,
            status=NotificationStatus.SENT,
            recipient=message.recipient,
            message_id=result.response_id,
        )

    async def dispatch(self, order: Order) -> DispatchResult:
        customer, operator = await asyncio.gather(
            self._send(NotificationChannel.CUSTOMER, self.build_customer_message, order),
            self._send(NotificationChannel.OPERATOR, self.build_operator_message, order),
        )
        return DispatchResult(customer=customer, operator=operator)
