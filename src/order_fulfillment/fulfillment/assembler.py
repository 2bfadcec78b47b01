"""Builds an Order from a verified checkout session."""

import logging
from dataclasses import dataclass, field
from enum import Enum

from order_fulfillment.core.models import (
    Order,
    OrderLineItem,
    ShippingAddress,
    minor_units_to_decimal,
)
from order_fulfillment.gateway.models import CheckoutSessionData
from order_fulfillment.storage.base import ProductCatalog

logger = logging.getLogger(__name__)


class CartDecodePolicy(str, Enum):
    """What to do when the serialized cart cannot be read."""

    DEGRADE_TO_EMPTY = "degrade_to_empty"


@dataclass
class AssemblyResult:
    """Result of assembling an order, not yet persisted."""

    order: Order
    missing_product_ids: list[str] = field(default_factory=list)
    cart_error: str | None = None

    @property
    def is_partial(self) -> bool:
        return bool(self.missing_product_ids) or self.cart_error is not None


class OrderAssembler:
    """Resolves the session cart against the catalog into line item snapshots."""

    policy = CartDecodePolicy.DEGRADE_TO_EMPTY

    def __init__(self, catalog: ProductCatalog, default_currency: str = "eur"):
        self._catalog = catalog
        self._default_currency = default_currency

    async def assemble(self, session: CheckoutSessionData) -> AssemblyResult:
        metadata = session.metadata

        if metadata.cart_error:
            logger.warning(
                "Cart for session %s unreadable (%s), applying %s",
                session.id,
                metadata.cart_error,
                self.policy.value,
            )

        items: list[OrderLineItem] = []
        missing: list[str] = []
        for entry in metadata.cart:
            if not entry.product_id:
                continue
            product = await self._catalog.find_by_id(entry.product_id)
            if product is None:
                logger.warning(
                    "Product %s not found for session %s, omitting line item",
                    entry.product_id,
                    session.id,
                )
                missing.append(entry.product_id)
                continue
            items.append(OrderLineItem.snapshot(product, entry.quantity))

        order = Order(
            customer_name=metadata.customer_name or "Inconnu",
            customer_email=session.customer_email,
            shipping_address=ShippingAddress(
                street=metadata.street or "",
                city=metadata.city or "",
                postal_code=metadata.postal_code or "",
            ),
            items=tuple(items),
            total=minor_units_to_decimal(session.amount_total),
            currency=session.currency or self._default_currency,
            stripe_session_id=session.id,
        )

        return AssemblyResult(
            order=order,
            missing_product_ids=missing,
            cart_error=metadata.cart_error,
        )
