"""Core shared functionality for order fulfillment."""

from order_fulfillment.core.exceptions import (
    FulfillmentError,
    OrderConflictError,
    PayloadValidationError,
    SignatureExpiredError,
    SignatureVerificationError,
    StoreError,
)
from order_fulfillment.core.models import (
    NotificationChannel,
    NotificationMessage,
    Order,
    OrderLineItem,
    Product,
    ShippingAddress,
)

__all__ = [
    "FulfillmentError",
    "NotificationChannel",
    "NotificationMessage",
    "Order",
    "OrderConflictError",
    "OrderLineItem",
    "PayloadValidationError",
    "Product",
    "ShippingAddress",
    "SignatureExpiredError",
    "SignatureVerificationError",
    "StoreError",
]
