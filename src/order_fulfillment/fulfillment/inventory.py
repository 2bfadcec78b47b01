"""Stock adjustment for a persisted order."""

import asyncio
import logging
from dataclasses import dataclass, field

from order_fulfillment.core.exceptions import StoreError
from order_fulfillment.core.models import Order
from order_fulfillment.storage.base import ProductCatalog

logger = logging.getLogger(__name__)


@dataclass
class StockAdjustment:
    product_id: str
    quantity: int
    new_stock: int


@dataclass
class SkippedAdjustment:
    product_id: str
    reason: str


@dataclass
class InventoryResult:
    """Outcome of decrementing stock for every line item of an order."""

    adjusted: list[StockAdjustment] = field(default_factory=list)
    skipped: list[SkippedAdjustment] = field(default_factory=list)


class InventoryAdjuster:
    """Decrements stock per line item; a failing product never stops the others."""

    def __init__(self, catalog: ProductCatalog, timeout: float | None = None):
        self._catalog = catalog
        self._timeout = timeout

    async def adjust(self, order: Order) -> InventoryResult:
        result = InventoryResult()

        for item in order.items:
            try:
                new_stock = await asyncio.wait_for(
                    self._catalog.decrement_stock(item.product_id, item.quantity),
                    timeout=self._timeout,
                )
            except (StoreError, TimeoutError) as e:
                reason = str(e) or type(e).__name__
                logger.warning(
                    "Stock update failed for product %s (order %s): %s",
                    item.product_id,
                    order.id,
                    reason,
                )
                result.skipped.append(SkippedAdjustment(item.product_id, reason))
                continue

            if new_stock is None:
                logger.warning(
                    "Product %s disappeared before stock update (order %s), skipping",
                    item.product_id,
                    order.id,
                )
                result.skipped.append(SkippedAdjustment(item.product_id, "product not found"))
                continue

            logger.debug("Stock for %s is now %d", item.product_id, new_stock)
            result.adjusted.append(StockAdjustment(item.product_id, item.quantity, new_stock))

        return result
