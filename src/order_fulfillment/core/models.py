"""Domain models shared across the fulfillment stages."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_serializer

CENTS = Decimal("0.01")


def minor_units_to_decimal(amount: int | None) -> Decimal:
    """Convert an integer amount in minor currency units (cents) to a Decimal."""
    return (Decimal(amount or 0) / 100).quantize(CENTS)


class Product(BaseModel):
    """Catalog product as read from the product table."""

    id: str
    name: str
    category: str = ""
    price: Decimal = Field(..., ge=0)
    reference: str | None = None
    stock: int = Field(default=0, ge=0)


class OrderLineItem(BaseModel):
    """Snapshot of a product captured when the order is assembled."""

    model_config = ConfigDict(frozen=True)

    product_id: str
    name: str
    category: str = ""
    quantity: int = Field(..., ge=1)
    unit_price: Decimal
    reference: str

    @classmethod
    def snapshot(cls, product: Product, quantity: int) -> "OrderLineItem":
        return cls(
            product_id=product.id,
            name=product.name,
            category=product.category,
            quantity=quantity,
            unit_price=product.price,
            reference=product.reference or product.id,
        )

    @computed_field
    @property
    def subtotal(self) -> Decimal:
        return (self.unit_price * self.quantity).quantize(CENTS)

    @property
    def display_name(self) -> str:
        return f"{self.category} {self.name}".strip()


class ShippingAddress(BaseModel):
    """Shipping address collected at checkout."""

    model_config = ConfigDict(frozen=True)

    street: str = ""
    city: str = ""
    postal_code: str = ""


class Order(BaseModel):
    """Order persisted once per completed checkout session."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    customer_name: str = "Inconnu"
    customer_email: str = ""
    shipping_address: ShippingAddress = Field(default_factory=ShippingAddress)
    items: tuple[OrderLineItem, ...] = ()
    total: Decimal = Field(..., ge=0, description="Amount charged by the gateway")
    currency: str = "eur"
    stripe_session_id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_serializer("created_at")
    def serialize_datetime(self, value: datetime) -> str:
        return value.isoformat()

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)


class NotificationChannel(str, Enum):
    """Audience of a notification."""

    CUSTOMER = "customer"
    OPERATOR = "operator"


class NotificationMessage(BaseModel):
    """A rendered e-mail ready to be handed to a channel."""

    model_config = ConfigDict(frozen=True)

    recipient: str
    subject: str
    html_body: str
    text_body: str = ""
    channel: NotificationChannel
    reply_to: str | None = None
