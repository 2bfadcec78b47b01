"""Unit tests for order and product storage."""

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import psycopg
import pytest

from order_fulfillment.core.exceptions import OrderConflictError, StoreError
from order_fulfillment.core.models import Order, OrderLineItem, minor_units_to_decimal
from order_fulfillment.storage.memory import InMemoryOrderStore
from order_fulfillment.storage.postgres import (
    PostgresDatabase,
    PostgresOrderStore,
    PostgresProductCatalog,
)


def make_order(session_id: str = "sess_store") -> Order:
    return Order(
        stripe_session_id=session_id,
        total=Decimal("15.00"),
        items=(
            OrderLineItem(
                product_id="p1",
                name="Doudou lapin",
                category="Peluche",
                quantity=2,
                unit_price=Decimal("7.50"),
                reference="LAP-01",
            ),
        ),
    )


def fake_database(app_settings, cursor: AsyncMock) -> PostgresDatabase:
    """PostgresDatabase whose pool hands out a connection yielding ``cursor``."""
    conn = MagicMock()

    @asynccontextmanager
    async def cursor_cm(*args, **kwargs):
        yield cursor

    conn.cursor = cursor_cm

    @asynccontextmanager
    async def connection_cm(*args, **kwargs):
        yield conn

    pool = MagicMock()
    pool.connection = connection_cm

    database = PostgresDatabase(app_settings)
    database._pool = pool
    return database


class TestModels:
    def test_minor_units_conversion(self):
        assert minor_units_to_decimal(1500) == Decimal("15.00")
        assert minor_units_to_decimal(1) == Decimal("0.01")
        assert minor_units_to_decimal(None) == Decimal("0.00")

    def test_line_item_subtotal(self):
        assert make_order().items[0].subtotal == Decimal("15.00")
        assert make_order().item_count == 2


class TestInMemoryOrderStore:
    @pytest.mark.asyncio
    async def test_insert_and_find(self):
        store = InMemoryOrderStore()
        order = make_order()

        await store.insert(order)

        assert await store.find_by_session_id("sess_store") == order
        assert await store.find_by_session_id("other") is None

    @pytest.mark.asyncio
    async def test_second_insert_conflicts(self):
        store = InMemoryOrderStore()
        await store.insert(make_order())

        with pytest.raises(OrderConflictError) as exc_info:
            await store.insert(make_order())

        assert exc_info.value.session_id == "sess_store"
        assert len(store.orders) == 1


class TestPostgresOrderStore:
    @pytest.mark.asyncio
    async def test_insert_returns_order(self, app_settings):
        cursor = AsyncMock()
        cursor.fetchone.return_value = (uuid.uuid4(),)
        store = PostgresOrderStore(fake_database(app_settings, cursor))
        order = make_order()

        assert await store.insert(order) == order

        sql, params = cursor.execute.await_args.args
        assert "ON CONFLICT (stripe_session_id) DO NOTHING" in sql
        assert params["stripe_session_id"] == "sess_store"
        assert params["items"].obj[0]["product_id"] == "p1"

    @pytest.mark.asyncio
    async def test_insert_without_returned_row_is_conflict(self, app_settings):
        cursor = AsyncMock()
        cursor.fetchone.return_value = None
        store = PostgresOrderStore(fake_database(app_settings, cursor))

        with pytest.raises(OrderConflictError):
            await store.insert(make_order())

    @pytest.mark.asyncio
    async def test_database_error_is_store_error(self, app_settings):
        cursor = AsyncMock()
        cursor.execute.side_effect = psycopg.OperationalError("server closed the connection")
        store = PostgresOrderStore(fake_database(app_settings, cursor))

        with pytest.raises(StoreError) as exc_info:
            await store.insert(make_order())
        assert exc_info.value.operation == "insert"

    @pytest.mark.asyncio
    async def test_find_by_session_id_rebuilds_order(self, app_settings):
        order = make_order()
        cursor = AsyncMock()
        cursor.fetchone.return_value = {
            "id": order.id,
            "customer_name": "Inconnu",
            "customer_email": "",
            "street": "",
            "city": "",
            "postal_code": "",
            "items": order.model_dump(mode="json")["items"],
            "total": Decimal("15.00"),
            "currency": "eur",
            "stripe_session_id": "sess_store",
            "created_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
        }
        store = PostgresOrderStore(fake_database(app_settings, cursor))

        found = await store.find_by_session_id("sess_store")

        assert found.id == order.id
        assert found.items == order.items

    @pytest.mark.asyncio
    async def test_pool_not_started(self, app_settings):
        store = PostgresOrderStore(PostgresDatabase(app_settings))

        with pytest.raises(StoreError):
            await store.find_by_session_id("sess_store")


class TestPostgresProductCatalog:
    @pytest.mark.asyncio
    async def test_decrement_is_clamped_in_sql(self, app_settings):
        cursor = AsyncMock()
        cursor.fetchone.return_value = (0,)
        catalog = PostgresProductCatalog(fake_database(app_settings, cursor))

        assert await catalog.decrement_stock("p1", 3) == 0

        sql, params = cursor.execute.await_args.args
        assert "GREATEST(stock - %s, 0)" in sql
        assert params == (3, "p1")

    @pytest.mark.asyncio
    async def test_decrement_unknown_product(self, app_settings):
        cursor = AsyncMock()
        cursor.fetchone.return_value = None
        catalog = PostgresProductCatalog(fake_database(app_settings, cursor))

        assert await catalog.decrement_stock("nope", 1) is None

    @pytest.mark.asyncio
    async def test_find_by_id(self, app_settings):
        cursor = AsyncMock()
        cursor.fetchone.return_value = {
            "id": "p1",
            "name": "Doudou lapin",
            "category": "Peluche",
            "price": Decimal("7.50"),
            "reference": None,
            "stock": 4,
        }
        catalog = PostgresProductCatalog(fake_database(app_settings, cursor))

        product = await catalog.find_by_id("p1")

        assert product.price == Decimal("7.50")
        assert product.stock == 4
