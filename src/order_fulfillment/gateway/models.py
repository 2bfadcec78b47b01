"""Stripe webhook Pydantic models for checkout session events."""

import json
import logging
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

logger = logging.getLogger(__name__)

CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"


# =============================================================================
# Session metadata
# =============================================================================


class CartEntry(BaseModel):
    """One `{id, quantite}` entry of the serialized cart."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    product_id: str | None = Field(default=None, alias="id")
    quantity: int = Field(default=1, alias="quantite")

    @field_validator("product_id", mode="before")
    @classmethod
    def coerce_product_id(cls, v: Any) -> str | None:
        if v is None or v == "":
            return None
        return str(v)

    @field_validator("quantity", mode="before")
    @classmethod
    def default_quantity(cls, v: Any) -> int:
        # Absent, zero, non-finite or unparseable quantities count as a single unit
        try:
            quantity = int(v)
        except (TypeError, ValueError, OverflowError):
            return 1
        return quantity if quantity > 0 else 1


def decode_cart(raw: str | None) -> tuple[list[CartEntry], str | None]:
    """
    Decode the JSON cart stored in session metadata.

    A missing, malformed or non-list payload degrades to an empty cart; the
    second element of the result carries the reason so callers can log it.
    Entries that are not objects are dropped.

    Returns:
        Tuple of (cart entries, decode error or None)
    """
    if raw is None or raw == "":
        return [], "missing cart payload"

    try:
        decoded = json.loads(raw)
    except (ValueError, TypeError, RecursionError) as e:
        return [], f"invalid cart JSON: {e}"

    if not isinstance(decoded, list):
        return [], f"cart payload is a {type(decoded).__name__}, expected a list"

    entries: list[CartEntry] = []
    for item in decoded:
        if not isinstance(item, dict):
            continue
        try:
            entries.append(CartEntry.model_validate(item))
        except (ValueError, TypeError, ArithmeticError) as e:
            logger.warning("Dropping unreadable cart entry %r: %s", item, e)
    return entries, None


class SessionMetadata(BaseModel):
    """Customer and cart fields attached to the checkout session."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    customer_name: str | None = Field(default=None, alias="nom")
    email: str | None = None
    street: str | None = Field(default=None, alias="adresse")
    city: str | None = Field(default=None, alias="ville")
    postal_code: str | None = Field(default=None, alias="cp")
    cart: list[CartEntry] = Field(default_factory=list)
    cart_error: str | None = None

    @model_validator(mode="before")
    @classmethod
    def decode_products(cls, data: Any) -> Any:
        # The cart only ever comes from `products`; raw `cart`/`cart_error` keys are overwritten
        if not isinstance(data, dict):
            return data
        data = dict(data)
        cart, error = decode_cart(data.pop("products", None))
        data["cart"] = cart
        data["cart_error"] = error
        return data


# =============================================================================
# Checkout session (data.object)
# =============================================================================


class CustomerDetails(BaseModel):
    """Customer details collected by Stripe Checkout."""

    email: str | None = None
    name: str | None = None


class CheckoutSessionData(BaseModel):
    """Data object for checkout.session.* events (nested in data.object)."""

    id: str = Field(..., min_length=1, description="Checkout Session ID")
    object: Literal["checkout.session"] = "checkout.session"
    amount_total: int | None = Field(
        default=None, ge=0, description="Amount in smallest currency unit (cents)"
    )
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    customer_details: CustomerDetails | None = None
    payment_status: str | None = None
    metadata: SessionMetadata = Field(default_factory=SessionMetadata)

    @field_validator("currency")
    @classmethod
    def lowercase_currency(cls, v: str | None) -> str | None:
        return v.lower() if v else v

    @field_validator("metadata", mode="before")
    @classmethod
    def null_metadata(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def customer_email(self) -> str:
        if self.metadata.email:
            return self.metadata.email
        if self.customer_details and self.customer_details.email:
            return self.customer_details.email
        return ""


# =============================================================================
# Events
# =============================================================================


class CheckoutSessionEventData(BaseModel):
    """Wrapper for checkout session event data."""

    object: CheckoutSessionData
    previous_attributes: dict[str, Any] | None = None


class GenericEventData(BaseModel):
    """Wrapper for event types this service does not fulfil."""

    object: dict[str, Any] = Field(default_factory=dict)
    previous_attributes: dict[str, Any] | None = None


class CheckoutSessionCompletedEvent(BaseModel):
    """Stripe checkout.session.completed webhook event."""

    id: str = Field(..., description="Event ID")
    object: Literal["event"] = "event"
    api_version: str | None = None
    created: int | None = None
    type: Literal["checkout.session.completed"]
    data: CheckoutSessionEventData
    livemode: bool = False

    @property
    def session(self) -> CheckoutSessionData:
        return self.data.object


class StripeGenericEvent(BaseModel):
    """Any other Stripe event; acknowledged without processing."""

    id: str
    object: Literal["event"] = "event"
    api_version: str | None = None
    created: int | None = None
    type: str
    data: GenericEventData = Field(default_factory=GenericEventData)
    livemode: bool = False


def get_stripe_event_discriminator(v: Any) -> str:
    """Route checkout completions to the typed model and everything else to the generic one."""
    if isinstance(v, dict):
        event_type = v.get("type", "")
    else:
        event_type = getattr(v, "type", "")

    if event_type == CHECKOUT_SESSION_COMPLETED:
        return "checkout_session_completed"
    return "other"


StripeWebhookEvent = Annotated[
    Union[
        Annotated[CheckoutSessionCompletedEvent, Tag("checkout_session_completed")],
        Annotated[StripeGenericEvent, Tag("other")],
    ],
    Discriminator(get_stripe_event_discriminator),
]

StripeWebhookEventAdapter = TypeAdapter(StripeWebhookEvent)


# =============================================================================
# Endpoint response
# =============================================================================


class WebhookStatus(str, Enum):
    """Status of webhook processing."""

    FULFILLED = "fulfilled"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    INVALID_SIGNATURE = "invalid_signature"
    INVALID_PAYLOAD = "invalid_payload"
    PROCESSING_ERROR = "processing_error"


class WebhookResult(BaseModel):
    """Result returned from webhook endpoint."""

    status: WebhookStatus
    event_id: str | None = None
    event_type: str | None = None
    session_id: str | None = None
    order_id: str | None = None
    message: str | None = None
