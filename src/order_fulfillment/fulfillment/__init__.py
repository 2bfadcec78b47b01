"""Stages that turn a verified checkout session into a fulfilled order."""

from order_fulfillment.fulfillment.assembler import AssemblyResult, CartDecodePolicy, OrderAssembler
from order_fulfillment.fulfillment.deduplicator import EventDeduplicator
from order_fulfillment.fulfillment.inventory import InventoryAdjuster, InventoryResult
from order_fulfillment.fulfillment.notifications import (
    DispatchResult,
    NotificationDispatcher,
    NotificationOutcome,
    NotificationStatus,
)
from order_fulfillment.fulfillment.pipeline import (
    FulfillmentOutcome,
    FulfillmentPipeline,
    FulfillmentResult,
)

__all__ = [
    "AssemblyResult",
    "CartDecodePolicy",
    "DispatchResult",
    "EventDeduplicator",
    "FulfillmentOutcome",
    "FulfillmentPipeline",
    "FulfillmentResult",
    "InventoryAdjuster",
    "InventoryResult",
    "NotificationDispatcher",
    "NotificationOutcome",
    "NotificationStatus",
    "OrderAssembler",
]
