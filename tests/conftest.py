"""Pytest fixtures for order fulfillment tests."""

import json
from decimal import Decimal

import pytest

from order_fulfillment.config import Settings
from order_fulfillment.core.models import NotificationMessage, Product
from order_fulfillment.fulfillment.notifications import NotificationDispatcher
from order_fulfillment.fulfillment.pipeline import FulfillmentPipeline
from order_fulfillment.gateway.validator import generate_stripe_signature
from order_fulfillment.notifications.email import SendResult
from order_fulfillment.storage.memory import InMemoryOrderStore, InMemoryProductCatalog


class RecordingEmailChannel:
    """E-mail channel double that records messages and can fail per recipient."""

    def __init__(self):
        self.sent: list[NotificationMessage] = []
        self.fail_for: set[str] = set()
        self.raise_for: set[str] = set()

    @property
    def channel_id(self) -> str:
        return "recording"

    async def send(self, message: NotificationMessage) -> SendResult:
        if message.recipient in self.raise_for:
            raise ConnectionResetError("connection reset by peer")
        if message.recipient in self.fail_for:
            return SendResult(success=False, channel_id=self.channel_id, error="550 mailbox unavailable")
        self.sent.append(message)
        return SendResult(
            success=True,
            channel_id=self.channel_id,
            response_id=f"<{len(self.sent)}@test>",
        )


@pytest.fixture
def stripe_webhook_secret() -> str:
    """Test webhook signing secret."""
    return "whsec_test_secret_12345"


@pytest.fixture
def app_settings(stripe_webhook_secret) -> Settings:
    """Settings for an in-memory deployment with both e-mail recipients configured."""
    return Settings(
        _env_file=None,
        stripe_webhook_secret=stripe_webhook_secret,
        storage_backend="memory",
        email_sender="boutique@example.com",
        operator_email="operator@example.com",
        frontend_url="https://shop.example.com/",
        notification_timeout_seconds=1.0,
        store_timeout_seconds=1.0,
    )


@pytest.fixture
def products() -> list[Product]:
    return [
        Product(
            id="p1",
            name="Doudou lapin",
            category="Peluche",
            price=Decimal("7.50"),
            reference="LAP-01",
            stock=10,
        ),
        Product(
            id="p2",
            name="Bavoir",
            category="Textile",
            price=Decimal("4.00"),
            reference=None,
            stock=1,
        ),
    ]


@pytest.fixture
def catalog(products) -> InMemoryProductCatalog:
    return InMemoryProductCatalog(products)


@pytest.fixture
def store() -> InMemoryOrderStore:
    return InMemoryOrderStore()


@pytest.fixture
def email_channel() -> RecordingEmailChannel:
    return RecordingEmailChannel()


@pytest.fixture
def dispatcher(email_channel, app_settings) -> NotificationDispatcher:
    return NotificationDispatcher(email_channel, app_settings)


@pytest.fixture
def pipeline(store, catalog, dispatcher, app_settings) -> FulfillmentPipeline:
    return FulfillmentPipeline(store, catalog, dispatcher, app_settings)


@pytest.fixture
def make_checkout_event():
    """Factory for checkout.session.completed payloads."""

    def _make(
        session_id: str = "sess_1",
        cart: list[dict] | str | None = None,
        amount_total: int | None = 1500,
        email: str | None = "jeanne@example.com",
        event_id: str = "evt_test_123",
    ) -> dict:
        if cart is None:
            cart = [{"id": "p1", "quantite": 2}]
        metadata = {
            "nom": "Jeanne Martin",
            "adresse": "12 rue des Lilas",
            "ville": "Albi",
            "cp": "81000",
            "products": cart if isinstance(cart, str) else json.dumps(cart),
        }
        if email is not None:
            metadata["email"] = email
        return {
            "id": event_id,
            "object": "event",
            "api_version": "2024-09-30.acacia",
            "created": 1700000000,
            "type": "checkout.session.completed",
            "data": {
                "object": {
                    "id": session_id,
                    "object": "checkout.session",
                    "amount_total": amount_total,
                    "currency": "eur",
                    "payment_status": "paid",
                    "metadata": metadata,
                },
                "previous_attributes": None,
            },
            "livemode": False,
        }

    return _make


@pytest.fixture
def sign(stripe_webhook_secret):
    """Serialize a payload and return (body bytes, Stripe-Signature header)."""

    def _sign(payload: dict) -> tuple[bytes, str]:
        body = json.dumps(payload).encode("utf-8")
        return body, generate_stripe_signature(body, stripe_webhook_secret)

    return _sign
