"""Detects checkout sessions that already produced an order."""

import logging

from order_fulfillment.storage.base import OrderStore

logger = logging.getLogger(__name__)


class EventDeduplicator:
    """
    Cheap pre-check against redelivered webhooks.

    A negative answer is not a guarantee: two concurrent deliveries can both
    pass it. The order store's insert-if-absent is what finally decides, and
    the pipeline treats its conflict exactly like a positive answer here.
    """

    def __init__(self, store: OrderStore):
        self._store = store

    async def is_processed(self, session_id: str) -> bool:
        existing = await self._store.find_by_session_id(session_id)
        if existing is not None:
            logger.info("Order %s already exists for session %s", existing.id, session_id)
            return True
        return False
