"""Order and product persistence."""

from order_fulfillment.storage.base import OrderStore, ProductCatalog
from order_fulfillment.storage.memory import InMemoryOrderStore, InMemoryProductCatalog
from order_fulfillment.storage.postgres import (
    PostgresDatabase,
    PostgresOrderStore,
    PostgresProductCatalog,
)

__all__ = [
    "InMemoryOrderStore",
    "InMemoryProductCatalog",
    "OrderStore",
    "PostgresDatabase",
    "PostgresOrderStore",
    "PostgresProductCatalog",
    "ProductCatalog",
]
