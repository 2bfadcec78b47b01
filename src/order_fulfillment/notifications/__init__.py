"""E-mail channel and message rendering."""

from order_fulfillment.notifications.email import EmailChannel, SendResult, SmtpEmailChannel
from order_fulfillment.notifications.templates import render_customer_receipt, render_operator_alert

__all__ = [
    "EmailChannel",
    "SendResult",
    "SmtpEmailChannel",
    "render_customer_receipt",
    "render_operator_alert",
]
