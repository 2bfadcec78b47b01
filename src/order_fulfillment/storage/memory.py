"""In-process order store and product catalog.

Used for local development (``STORAGE_BACKEND=memory``) and in tests. Both
classes give the same guarantees as the Postgres implementations: inserts are
atomic per session id and stock decrements are atomic per product.
"""

import asyncio
from collections.abc import Iterable

from order_fulfillment.core.exceptions import OrderConflictError
from order_fulfillment.core.models import Order, Product


class InMemoryOrderStore:
    """Order store backed by a dict guarded by an asyncio lock."""

    def __init__(self):
        self._orders: dict[str, Order] = {}
        self._lock = asyncio.Lock()

    async def find_by_session_id(self, session_id: str) -> Order | None:
        return self._orders.get(session_id)

    async def insert(self, order: Order) -> Order:
        async with self._lock:
            if order.stripe_session_id in self._orders:
                raise OrderConflictError(order.stripe_session_id)
            self._orders[order.stripe_session_id] = order
        return order

    @property
    def orders(self) -> list[Order]:
        return list(self._orders.values())


class InMemoryProductCatalog:
    """Product catalog with per-product locks for stock updates."""

    def __init__(self, products: Iterable[Product] = ()):
        self._products: dict[str, Product] = {p.id: p for p in products}
        self._locks: dict[str, asyncio.Lock] = {}

    def add(self, product: Product) -> None:
        self._products[product.id] = product

    def remove(self, product_id: str) -> None:
        self._products.pop(product_id, None)

    async def find_by_id(self, product_id: str) -> Product | None:
        return self._products.get(product_id)

    async def decrement_stock(self, product_id: str, quantity: int) -> int | None:
        lock = self._locks.setdefault(product_id, asyncio.Lock())
        async with lock:
            product = self._products.get(product_id)
            if product is None:
                return None
            new_stock = max(0, product.stock - quantity)
            self._products[product_id] = product.model_copy(update={"stock": new_stock})
            return new_stock
