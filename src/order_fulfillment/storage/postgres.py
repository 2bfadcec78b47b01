"""Postgres persistence for orders and product stock using psycopg 3."""

import asyncio
import logging
from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import AsyncConnectionPool, PoolTimeout

from order_fulfillment.config import Settings
from order_fulfillment.core.exceptions import OrderConflictError, StoreError
from order_fulfillment.core.models import Order, OrderLineItem, Product, ShippingAddress

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS products (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    category TEXT NOT NULL DEFAULT '',
    price NUMERIC(10, 2) NOT NULL CHECK (price >= 0),
    reference TEXT,
    stock INTEGER NOT NULL DEFAULT 0 CHECK (stock >= 0)
);

CREATE TABLE IF NOT EXISTS orders (
    id UUID PRIMARY KEY,
    customer_name TEXT NOT NULL,
    customer_email TEXT NOT NULL DEFAULT '',
    street TEXT NOT NULL DEFAULT '',
    city TEXT NOT NULL DEFAULT '',
    postal_code TEXT NOT NULL DEFAULT '',
    items JSONB NOT NULL DEFAULT '[]'::jsonb,
    total NUMERIC(10, 2) NOT NULL,
    currency TEXT NOT NULL DEFAULT 'eur',
    stripe_session_id TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    CONSTRAINT orders_stripe_session_id_key UNIQUE (stripe_session_id)
);
"""


class PostgresDatabase:
    """Owns the async connection pool shared by the order store and catalog."""

    def __init__(self, settings: Settings):
        self._settings = settings
        self._pool: AsyncConnectionPool | None = None

    @property
    def pool(self) -> AsyncConnectionPool:
        if self._pool is None:
            raise StoreError("Postgres pool not started", operation="pool")
        return self._pool

    async def start(self) -> None:
        """Open the connection pool, retrying while the database comes up."""
        if self._pool is not None:
            return

        delay = self._settings.postgres_retry_delay
        last_error: Exception | None = None

        for attempt in range(1, self._settings.postgres_connection_retries + 1):
            pool = AsyncConnectionPool(
                self._settings.postgres_dsn,
                min_size=self._settings.postgres_pool_min_size,
                max_size=self._settings.postgres_pool_max_size,
                open=False,
            )
            try:
                await pool.open(wait=True, timeout=self._settings.store_timeout_seconds)
                self._pool = pool
                logger.info(
                    "Postgres pool opened (%s:%d/%s)",
                    self._settings.postgres_host,
                    self._settings.postgres_port,
                    self._settings.postgres_db,
                )
                return
            except (PoolTimeout, psycopg.OperationalError) as e:
                last_error = e
                await pool.close()
                if attempt < self._settings.postgres_connection_retries:
                    logger.warning(
                        "Postgres connection attempt %d/%d failed: %s. Retrying in %.1fs...",
                        attempt,
                        self._settings.postgres_connection_retries,
                        str(e),
                        delay,
                    )
                    await asyncio.sleep(delay)
                    delay = min(delay * 2, self._settings.postgres_retry_max_delay)
                else:
                    logger.error(
                        "Failed to connect to Postgres after %d attempts",
                        self._settings.postgres_connection_retries,
                    )

        raise StoreError(
            f"Could not connect to Postgres after {self._settings.postgres_connection_retries} attempts: {last_error}",
            operation="connect",
        )

    async def stop(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("Postgres pool closed")

    async def ensure_schema(self) -> None:
        """Create the products and orders tables if they do not exist."""
        try:
            async with self.pool.connection() as conn:
                await conn.execute(SCHEMA_SQL)
        except psycopg.Error as e:
            raise StoreError(f"Failed to create schema: {e}", operation="ensure_schema") from e
        logger.info("Database schema ready")


def _row_to_order(row: dict[str, Any]) -> Order:
    return Order(
        id=row["id"],
        customer_name=row["customer_name"],
        customer_email=row["customer_email"],
        shipping_address=ShippingAddress(
            street=row["street"],
            city=row["city"],
            postal_code=row["postal_code"],
        ),
        items=tuple(OrderLineItem.model_validate(item) for item in row["items"]),
        total=row["total"],
        currency=row["currency"],
        stripe_session_id=row["stripe_session_id"],
        created_at=row["created_at"],
    )


class PostgresOrderStore:
    """Order store enforcing one order per checkout session via a unique constraint."""

    def __init__(self, database: PostgresDatabase):
        self._db = database

    async def find_by_session_id(self, session_id: str) -> Order | None:
        try:
            async with self._db.pool.connection() as conn:
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(
                        """
                        SELECT id, customer_name, customer_email, street, city, postal_code,
                               items, total, currency, stripe_session_id, created_at
                        FROM orders
                        WHERE stripe_session_id = %s
                        """,
                        (session_id,),
                    )
                    row = await cur.fetchone()
        except psycopg.Error as e:
            raise StoreError(f"Order lookup failed: {e}", operation="find_by_session_id") from e

        return _row_to_order(row) if row else None

    async def insert(self, order: Order) -> Order:
        dumped = order.model_dump(mode="json")
        record = {
            "id": order.id,
            "customer_name": order.customer_name,
            "customer_email": order.customer_email,
            "street": order.shipping_address.street,
            "city": order.shipping_address.city,
            "postal_code": order.shipping_address.postal_code,
            "items": Jsonb(dumped["items"]),
            "total": order.total,
            "currency": order.currency,
            "stripe_session_id": order.stripe_session_id,
            "created_at": order.created_at,
        }

        try:
            async with self._db.pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        """
                        INSERT INTO orders (
                            id, customer_name, customer_email,
                            street, city, postal_code,
                            items, total, currency,
                            stripe_session_id, created_at
                        ) VALUES (
                            %(id)s, %(customer_name)s, %(customer_email)s,
                            %(street)s, %(city)s, %(postal_code)s,
                            %(items)s, %(total)s, %(currency)s,
                            %(stripe_session_id)s, %(created_at)s
                        )
                        ON CONFLICT (stripe_session_id) DO NOTHING
                        RETURNING id
                        """,
                        record,
                    )
                    inserted = await cur.fetchone()
        except psycopg.Error as e:
            raise StoreError(f"Order insert failed: {e}", operation="insert") from e

        if inserted is None:
            raise OrderConflictError(order.stripe_session_id)
        return order


class PostgresProductCatalog:
    """Product lookups and clamped, single-statement stock decrements."""

    def __init__(self, database: PostgresDatabase):
        self._db = database

    async def find_by_id(self, product_id: str) -> Product | None:
        try:
            async with self._db.pool.connection() as conn:
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(
                        "SELECT id, name, category, price, reference, stock FROM products WHERE id = %s",
                        (product_id,),
                    )
                    row = await cur.fetchone()
        except psycopg.Error as e:
            raise StoreError(f"Product lookup failed: {e}", operation="find_by_id") from e

        return Product.model_validate(row) if row else None

    async def decrement_stock(self, product_id: str, quantity: int) -> int | None:
        try:
            async with self._db.pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        """
                        UPDATE products
                        SET stock = GREATEST(stock - %s, 0)
                        WHERE id = %s
                        RETURNING stock
                        """,
                        (quantity, product_id),
                    )
                    row = await cur.fetchone()
        except psycopg.Error as e:
            raise StoreError(f"Stock update failed: {e}", operation="decrement_stock") from e

        return row[0] if row else None
