"""Signed checkout.session.completed event generator for local testing."""

import asyncio
import json
import logging
import secrets
import time
from typing import Any

import httpx

from order_fulfillment.gateway.validator import generate_stripe_signature

logger = logging.getLogger(__name__)


class CheckoutWebhookSimulator:
    """
    Build and send Stripe checkout webhooks the way Stripe would.

    Supports:
    - Valid HMAC-SHA256 signature generation
    - Replaying the same event (sequentially or concurrently) to exercise deduplication
    - Invalid signature generation for rejection testing
    """

    def __init__(self, gateway_url: str, webhook_secret: str, timeout: float = 30.0):
        """
        Initialize the simulator.

        Args:
            gateway_url: URL of the webhook endpoint
            webhook_secret: Stripe webhook signing secret
            timeout: HTTP timeout per request in seconds
        """
        self.gateway_url = gateway_url.rstrip("/") + "/"
        self.webhook_secret = webhook_secret
        self.timeout = timeout

    def _generate_id(self, prefix: str, length: int = 24) -> str:
        """Generate a Stripe-style ID with prefix."""
        return f"{prefix}{secrets.token_hex(length // 2)}"

    def generate_event(
        self,
        cart: list[dict[str, Any]],
        amount_total: int,
        session_id: str | None = None,
        customer_name: str = "Jeanne Martin",
        customer_email: str = "jeanne.martin@example.com",
        street: str = "12 rue des Lilas",
        city: str = "Albi",
        postal_code: str = "81000",
        currency: str = "eur",
    ) -> dict[str, Any]:
        """
        Generate a complete checkout.session.completed event.

        Args:
            cart: List of {"id": ..., "quantite": ...} cart entries
            amount_total: Charged amount in minor units
            session_id: Checkout session id (random when omitted)

        Returns:
            Complete event payload matching Stripe's format
        """
        return {
            "id": self._generate_id("evt_", 24),
            "object": "event",
            "api_version": "2024-09-30.acacia",
            "created": int(time.time()),
            "type": "checkout.session.completed",
            "data": {
                "object": {
                    "id": session_id or self._generate_id("cs_test_", 32),
                    "object": "checkout.session",
                    "amount_total": amount_total,
                    "currency": currency,
                    "payment_status": "paid",
                    "customer_details": {"email": customer_email, "name": customer_name},
                    "metadata": {
                        "nom": customer_name,
                        "email": customer_email,
                        "adresse": street,
                        "ville": city,
                        "cp": postal_code,
                        "products": json.dumps(cart),
                    },
                },
                "previous_attributes": None,
            },
            "livemode": False,
        }

    def sign_payload(self, payload: bytes, timestamp: int | None = None) -> str:
        """Generate a valid Stripe-Signature header."""
        return generate_stripe_signature(payload, self.webhook_secret, timestamp)

    async def send_webhook(
        self,
        event: dict[str, Any],
        invalid_signature: bool = False,
        client: httpx.AsyncClient | None = None,
    ) -> httpx.Response:
        """
        Send a webhook event to the service.

        Args:
            event: Event payload to send
            invalid_signature: If True, send with an invalid signature
            client: Optional shared HTTP client

        Returns:
            HTTP response from the service
        """
        payload = json.dumps(event).encode("utf-8")

        if invalid_signature:
            signature = "t=0,v1=invalid_signature_for_testing"
        else:
            signature = self.sign_payload(payload)

        headers = {
            "Content-Type": "application/json",
            "Stripe-Signature": signature,
        }

        if client is not None:
            return await client.post(self.gateway_url, content=payload, headers=headers)

        async with httpx.AsyncClient(timeout=self.timeout) as own_client:
            return await own_client.post(self.gateway_url, content=payload, headers=headers)

    async def replay(
        self,
        event: dict[str, Any],
        times: int = 2,
        concurrent: bool = False,
    ) -> list[httpx.Response]:
        """
        Deliver the same event several times.

        Args:
            event: Event payload to send
            times: Number of deliveries
            concurrent: Send all deliveries at once instead of one after another

        Returns:
            Responses in delivery order
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            if concurrent:
                return list(
                    await asyncio.gather(
                        *(self.send_webhook(event, client=client) for _ in range(times))
                    )
                )

            responses = []
            for _ in range(times):
                responses.append(await self.send_webhook(event, client=client))
            return responses
