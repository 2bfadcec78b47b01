"""Stripe webhook router for FastAPI."""

import logging

from fastapi import APIRouter, Header, Request, Response, status
from pydantic import ValidationError

from order_fulfillment.config import Settings
from order_fulfillment.core.exceptions import SignatureVerificationError, StoreError
from order_fulfillment.fulfillment.pipeline import FulfillmentOutcome, FulfillmentPipeline
from order_fulfillment.gateway.models import (
    CheckoutSessionCompletedEvent,
    StripeWebhookEventAdapter,
    WebhookResult,
    WebhookStatus,
)
from order_fulfillment.gateway.validator import verify_stripe_signature

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/", response_model=WebhookResult)
async def receive_stripe_webhook(
    request: Request,
    response: Response,
    stripe_signature: str | None = Header(default=None, alias="Stripe-Signature"),
) -> WebhookResult:
    """
    Receive and fulfil Stripe checkout webhook events.

    This endpoint:
    1. Verifies the webhook signature (HMAC-SHA256) against the raw body
    2. Validates the payload structure using Pydantic
    3. Runs the fulfillment pipeline for checkout.session.completed events

    Returns 200 for fulfilled, duplicate and ignored events, 400 when the
    signature or payload is rejected, and 500 when processing failed before
    the order was saved, so that Stripe redelivers.
    """
    # Read raw body (needed for signature verification)
    raw_body = await request.body()
    settings: Settings = request.app.state.settings

    # Step 1: Verify signature
    try:
        verify_stripe_signature(
            payload=raw_body,
            signature_header=stripe_signature,
            secret=settings.stripe_webhook_secret,
            tolerance=settings.stripe_signature_tolerance,
        )
    except SignatureVerificationError as e:
        logger.warning("Signature verification failed: %s", str(e))
        response.status_code = status.HTTP_400_BAD_REQUEST
        return WebhookResult(status=WebhookStatus.INVALID_SIGNATURE, message=str(e))

    # Step 2: Parse and validate payload structure
    try:
        event = StripeWebhookEventAdapter.validate_json(raw_body)
    except ValidationError as e:
        error_details = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        logger.warning("Payload validation failed: %s", error_details)
        response.status_code = status.HTTP_400_BAD_REQUEST
        return WebhookResult(
            status=WebhookStatus.INVALID_PAYLOAD,
            message=f"Validation error: {error_details}",
        )

    logger.info("Stripe signature valid, event %s (type=%s)", event.id, event.type)

    if not isinstance(event, CheckoutSessionCompletedEvent):
        return WebhookResult(
            status=WebhookStatus.IGNORED,
            event_id=event.id,
            event_type=event.type,
        )

    # Step 3: Fulfil the checkout session
    pipeline: FulfillmentPipeline = request.app.state.pipeline
    session = event.session
    try:
        result = await pipeline.process(session)
    except StoreError as e:
        logger.error("Store failure while processing session %s: %s", session.id, str(e))
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return WebhookResult(
            status=WebhookStatus.PROCESSING_ERROR,
            event_id=event.id,
            event_type=event.type,
            session_id=session.id,
            message="Order could not be saved",
        )
    except Exception as e:
        logger.error("Unexpected error processing session %s: %s", session.id, str(e), exc_info=True)
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return WebhookResult(
            status=WebhookStatus.PROCESSING_ERROR,
            event_id=event.id,
            event_type=event.type,
            session_id=session.id,
            message="Internal error while processing webhook",
        )

    if result.outcome is FulfillmentOutcome.DUPLICATE:
        return WebhookResult(
            status=WebhookStatus.DUPLICATE,
            event_id=event.id,
            event_type=event.type,
            session_id=session.id,
        )

    return WebhookResult(
        status=WebhookStatus.FULFILLED,
        event_id=event.id,
        event_type=event.type,
        session_id=session.id,
        order_id=str(result.order.id),
    )
