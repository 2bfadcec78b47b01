"""FastAPI application entry point for the order fulfillment service."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from order_fulfillment import __version__
from order_fulfillment.config import Settings, settings
from order_fulfillment.fulfillment.notifications import NotificationDispatcher
from order_fulfillment.fulfillment.pipeline import FulfillmentPipeline
from order_fulfillment.gateway.router import router as stripe_router
from order_fulfillment.notifications.email import EmailChannel, SmtpEmailChannel
from order_fulfillment.storage.base import OrderStore, ProductCatalog
from order_fulfillment.storage.memory import InMemoryOrderStore, InMemoryProductCatalog
from order_fulfillment.storage.postgres import (
    PostgresDatabase,
    PostgresOrderStore,
    PostgresProductCatalog,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(
    app_settings: Settings = settings,
    *,
    store: OrderStore | None = None,
    catalog: ProductCatalog | None = None,
    channel: EmailChannel | None = None,
) -> FastAPI:
    """
    Build the application.

    Collaborators passed in are used as-is and left for the caller to manage;
    missing ones are built from settings on startup and torn down on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Manage application lifecycle.

        - Open the Postgres pool (or in-memory storage) on startup
        - Check the SMTP connection on startup
        - Close the Postgres pool on shutdown
        """
        # Startup
        logger.info("Starting order fulfillment service...")
        database: PostgresDatabase | None = None
        order_store = store
        product_catalog = catalog

        if order_store is None or product_catalog is None:
            if app_settings.storage_backend == "postgres":
                database = PostgresDatabase(app_settings)
                await database.start()
                order_store = order_store or PostgresOrderStore(database)
                product_catalog = product_catalog or PostgresProductCatalog(database)
            else:
                logger.warning("Using in-memory storage, orders will not survive a restart")
                order_store = order_store or InMemoryOrderStore()
                product_catalog = product_catalog or InMemoryProductCatalog()

        email_channel = channel
        if email_channel is None:
            smtp_channel = SmtpEmailChannel.from_settings(app_settings)
            await smtp_channel.verify()
            email_channel = smtp_channel

        dispatcher = NotificationDispatcher(email_channel, app_settings)
        app.state.settings = app_settings
        app.state.store = order_store
        app.state.catalog = product_catalog
        app.state.pipeline = FulfillmentPipeline(
            order_store, product_catalog, dispatcher, app_settings
        )
        logger.info("Order fulfillment service started successfully")

        yield

        # Shutdown
        logger.info("Shutting down order fulfillment service...")
        if database is not None:
            await database.stop()
        logger.info("Order fulfillment service shutdown complete")

    app = FastAPI(
        title="Order Fulfillment",
        description="Consumes Stripe checkout webhooks and fulfils orders exactly once",
        version=__version__,
        lifespan=lifespan,
    )

    app.include_router(stripe_router, prefix="/webhooks/stripe", tags=["stripe"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint for container orchestration."""
        return {
            "status": "healthy",
            "service": "order-fulfillment",
            "storage_backend": app_settings.storage_backend,
            "webhook_secret_configured": bool(app_settings.stripe_webhook_secret),
        }

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "service": "Order Fulfillment",
            "version": __version__,
            "endpoints": {
                "health": "/health",
                "stripe_webhooks": "/webhooks/stripe/",
            },
        }

    return app


app = create_app()
