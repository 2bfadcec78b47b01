"""Stripe webhook signature verification using HMAC-SHA256."""

import hashlib
import hmac
import time

from order_fulfillment.core.exceptions import SignatureExpiredError, SignatureVerificationError


def _parse_signature_header(signature_header: str) -> tuple[int, list[str]]:
    """Split a Stripe-Signature header into its timestamp and v1 signatures."""
    timestamp_str: str | None = None
    v1_signatures: list[str] = []

    try:
        for item in signature_header.split(","):
            key, value = item.strip().split("=", 1)
            if key == "t":
                timestamp_str = value
            elif key == "v1":
                v1_signatures.append(value)
    except ValueError as e:
        raise SignatureVerificationError(f"Invalid signature header format: {e}") from e

    if not timestamp_str:
        raise SignatureVerificationError("Missing timestamp in signature header")

    try:
        timestamp = int(timestamp_str)
    except ValueError as e:
        raise SignatureVerificationError(f"Invalid timestamp format: {e}") from e

    if not v1_signatures:
        raise SignatureVerificationError("No v1 signature found in header")

    return timestamp, v1_signatures


def compute_stripe_signature(payload: bytes, secret: str, timestamp: int) -> str:
    """Return the hex HMAC-SHA256 of ``"{timestamp}." + payload``."""
    signed_payload = f"{timestamp}.".encode() + payload
    return hmac.new(
        secret.encode("utf-8"),
        signed_payload,
        hashlib.sha256,
    ).hexdigest()


def verify_stripe_signature(
    payload: bytes,
    signature_header: str | None,
    secret: str,
    tolerance: int = 300,
) -> bool:
    """
    Verify Stripe webhook signature using HMAC-SHA256.

    Stripe-Signature header format: t=timestamp,v1=signature,v1=signature2,...

    The signed payload is constructed as: "{timestamp}.{payload}"
    The expected signature is HMAC-SHA256(secret, signed_payload)

    The payload must be the raw request body exactly as received; any
    re-serialization changes the bytes and fails the check.

    Args:
        payload: Raw request body bytes
        signature_header: Value of Stripe-Signature header
        secret: Webhook signing secret (starts with whsec_)
        tolerance: Maximum age of signature in seconds (default 300 = 5 minutes)

    Returns:
        True if signature is valid

    Raises:
        SignatureVerificationError: If signature is invalid or no secret is configured
        SignatureExpiredError: If signature timestamp is too old
    """
    if not secret:
        raise SignatureVerificationError("Webhook signing secret is not configured")

    if not signature_header:
        raise SignatureVerificationError("Missing Stripe-Signature header")

    timestamp, v1_signatures = _parse_signature_header(signature_header)

    current_time = int(time.time())
    if abs(current_time - timestamp) > tolerance:
        raise SignatureExpiredError(
            f"Signature timestamp ({timestamp}) is outside tolerance window "
            f"({tolerance} seconds). Current time: {current_time}"
        )

    expected_signature = compute_stripe_signature(payload, secret, timestamp).encode("ascii")

    # Compare signatures using constant-time comparison; compare_digest only
    # accepts str operands that are pure ASCII, so header values go in as bytes
    for signature in v1_signatures:
        if hmac.compare_digest(signature.encode("utf-8", errors="replace"), expected_signature):
            return True

    raise SignatureVerificationError("Signature verification failed")


def generate_stripe_signature(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    """
    Generate a valid Stripe webhook signature for testing.

    Args:
        payload: Request body bytes
        secret: Webhook signing secret
        timestamp: Unix timestamp (defaults to current time)

    Returns:
        Stripe-Signature header value
    """
    if timestamp is None:
        timestamp = int(time.time())

    signature = compute_stripe_signature(payload, secret, timestamp)
    return f"t={timestamp},v1={signature}"
