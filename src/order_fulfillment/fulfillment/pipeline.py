"""Fulfillment pipeline for verified checkout sessions."""

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from order_fulfillment.config import Settings
from order_fulfillment.core.exceptions import OrderConflictError, StoreError
from order_fulfillment.core.models import Order
from order_fulfillment.fulfillment.assembler import AssemblyResult, OrderAssembler
from order_fulfillment.fulfillment.deduplicator import EventDeduplicator
from order_fulfillment.fulfillment.inventory import InventoryAdjuster, InventoryResult
from order_fulfillment.fulfillment.notifications import DispatchResult, NotificationDispatcher
from order_fulfillment.gateway.models import CheckoutSessionData
from order_fulfillment.storage.base import OrderStore, ProductCatalog

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FulfillmentOutcome(str, Enum):
    FULFILLED = "fulfilled"
    DUPLICATE = "duplicate"


@dataclass
class FulfillmentResult:
    """Result of processing one checkout session."""

    outcome: FulfillmentOutcome
    session_id: str
    order: Order | None = None
    assembly: AssemblyResult | None = None
    inventory: InventoryResult | None = None
    notifications: DispatchResult | None = None


class FulfillmentPipeline:
    """
    Runs deduplication, assembly, persistence, stock and notifications in order.

    Store failures up to and including the insert raise StoreError so the
    webhook answers 500 and Stripe redelivers. Once the insert succeeds the
    remaining stages report problems in their results and never raise, so a
    redelivery can only ever hit the duplicate path.
    """

    def __init__(
        self,
        store: OrderStore,
        catalog: ProductCatalog,
        dispatcher: NotificationDispatcher,
        settings: Settings,
    ):
        self._store = store
        self._timeout = settings.store_timeout_seconds
        self._deduplicator = EventDeduplicator(store)
        self._assembler = OrderAssembler(catalog)
        self._inventory = InventoryAdjuster(catalog, timeout=self._timeout)
        self._dispatcher = dispatcher

    async def _bounded(self, awaitable: Awaitable[T], operation: str) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except TimeoutError as e:
            raise StoreError(f"{operation} timed out after {self._timeout}s", operation=operation) from e

    async def process(self, session: CheckoutSessionData) -> FulfillmentResult:
        session_id = session.id

        if await self._bounded(self._deduplicator.is_processed(session_id), "find_by_session_id"):
            logger.info("Duplicate delivery for session %s ignored", session_id)
            return FulfillmentResult(outcome=FulfillmentOutcome.DUPLICATE, session_id=session_id)

        assembly = await self._bounded(self._assembler.assemble(session), "assemble")

        try:
            order = await self._bounded(self._store.insert(assembly.order), "insert")
        except OrderConflictError:
            logger.info("Concurrent delivery already created the order for session %s", session_id)
            return FulfillmentResult(outcome=FulfillmentOutcome.DUPLICATE, session_id=session_id)

        logger.info(
            "Order %s saved for session %s (%d items, total=%s)",
            order.id,
            session_id,
            len(order.items),
            order.total,
        )

        inventory = await self._inventory.adjust(order)
        notifications = await self._dispatcher.dispatch(order)

        return FulfillmentResult(
            outcome=FulfillmentOutcome.FULFILLED,
            session_id=session_id,
            order=order,
            assembly=assembly,
            inventory=inventory,
            notifications=notifications,
        )
