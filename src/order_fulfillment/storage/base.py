"""Storage protocols for orders and the product catalog."""

from typing import Protocol, runtime_checkable

from order_fulfillment.core.models import Order, Product


@runtime_checkable
class OrderStore(Protocol):
    """Durable order storage keyed by Stripe checkout session id."""

    async def find_by_session_id(self, session_id: str) -> Order | None:
        """Return the order created for a checkout session, if any."""
        ...

    async def insert(self, order: Order) -> Order:
        """
        Insert an order unless one already exists for its session id.

        Raises:
            OrderConflictError: If an order for the same session id exists
            StoreError: If the store is unavailable
        """
        ...


@runtime_checkable
class ProductCatalog(Protocol):
    """Read access to products plus atomic stock decrements."""

    async def find_by_id(self, product_id: str) -> Product | None:
        ...

    async def decrement_stock(self, product_id: str, quantity: int) -> int | None:
        """
        Decrement stock by ``quantity``, clamped at zero.

        Returns:
            The new stock level, or None if the product does not exist

        Raises:
            StoreError: If the catalog is unavailable
        """
        ...
