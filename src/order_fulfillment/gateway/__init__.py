"""Stripe webhook boundary: signature checks and event schema."""

from order_fulfillment.gateway.models import (
    CheckoutSessionCompletedEvent,
    CheckoutSessionData,
    SessionMetadata,
    StripeWebhookEvent,
    StripeWebhookEventAdapter,
    WebhookResult,
    WebhookStatus,
)
from order_fulfillment.gateway.validator import generate_stripe_signature, verify_stripe_signature

__all__ = [
    "CheckoutSessionCompletedEvent",
    "CheckoutSessionData",
    "SessionMetadata",
    "StripeWebhookEvent",
    "StripeWebhookEventAdapter",
    "WebhookResult",
    "WebhookStatus",
    "generate_stripe_signature",
    "verify_stripe_signature",
]
