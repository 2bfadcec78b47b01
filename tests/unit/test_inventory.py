"""Unit tests for InventoryAdjuster and the in-memory catalog."""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from order_fulfillment.core.exceptions import StoreError
from order_fulfillment.core.models import Order, OrderLineItem, Product
from order_fulfillment.fulfillment.inventory import InventoryAdjuster
from order_fulfillment.storage.memory import InMemoryProductCatalog


def make_order(*lines: tuple[str, int]) -> Order:
    return Order(
        stripe_session_id="sess_inv",
        total=Decimal("10.00"),
        items=tuple(
            OrderLineItem(
                product_id=product_id,
                name=product_id,
                quantity=quantity,
                unit_price=Decimal("1.00"),
                reference=product_id,
            )
            for product_id, quantity in lines
        ),
    )


class TestInventoryAdjuster:
    """Tests for stock decrements."""

    @pytest.mark.asyncio
    async def test_decrements_stock(self, catalog):
        result = await InventoryAdjuster(catalog).adjust(make_order(("p1", 3)))

        assert (await catalog.find_by_id("p1")).stock == 7
        assert result.adjusted[0].new_stock == 7
        assert result.skipped == []

    @pytest.mark.asyncio
    async def test_stock_floor_is_zero(self, catalog):
        """Stock 1 decremented by 3 stays at 0."""
        result = await InventoryAdjuster(catalog).adjust(make_order(("p2", 3)))

        assert (await catalog.find_by_id("p2")).stock == 0
        assert result.adjusted[0].new_stock == 0

    @pytest.mark.asyncio
    async def test_deleted_product_skipped(self, catalog, caplog):
        catalog.remove("p1")

        result = await InventoryAdjuster(catalog).adjust(make_order(("p1", 1), ("p2", 1)))

        assert [s.product_id for s in result.skipped] == ["p1"]
        assert [a.product_id for a in result.adjusted] == ["p2"]
        assert "p1" in caplog.text

    @pytest.mark.asyncio
    async def test_store_error_for_one_product_does_not_stop_others(self):
        catalog = AsyncMock()
        catalog.decrement_stock.side_effect = [StoreError("deadlock detected"), 4]

        result = await InventoryAdjuster(catalog).adjust(make_order(("p1", 1), ("p2", 1)))

        assert result.skipped[0].product_id == "p1"
        assert "deadlock" in result.skipped[0].reason
        assert result.adjusted[0].product_id == "p2"
        assert catalog.decrement_stock.await_count == 2

    @pytest.mark.asyncio
    async def test_timeout_skips_product(self):
        async def hang(product_id, quantity):
            await asyncio.sleep(10)

        catalog = AsyncMock()
        catalog.decrement_stock.side_effect = hang

        result = await InventoryAdjuster(catalog, timeout=0.01).adjust(make_order(("p1", 1)))

        assert result.adjusted == []
        assert result.skipped[0].reason == "TimeoutError"


class TestInMemoryProductCatalog:
    """Per-product decrements must not lose updates under concurrency."""

    @pytest.mark.asyncio
    async def test_concurrent_decrements(self):
        catalog = InMemoryProductCatalog(
            [Product(id="p1", name="x", price=Decimal("1.00"), stock=100)]
        )

        await asyncio.gather(*(catalog.decrement_stock("p1", 1) for _ in range(30)))

        assert (await catalog.find_by_id("p1")).stock == 70

    @pytest.mark.asyncio
    async def test_unknown_product(self):
        assert await InMemoryProductCatalog().decrement_stock("nope", 1) is None
