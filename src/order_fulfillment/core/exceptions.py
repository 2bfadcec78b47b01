"""Custom exceptions for order fulfillment."""


class FulfillmentError(Exception):
    """Base exception for order fulfillment errors."""

    pass


class SignatureVerificationError(FulfillmentError):
    """Raised when webhook signature verification fails."""

    def __init__(self, message: str = "Signature verification failed"):
        self.message = message
        super().__init__(self.message)


class SignatureExpiredError(SignatureVerificationError):
    """Raised when webhook signature timestamp is expired."""

    def __init__(self, message: str = "Signature timestamp expired"):
        super().__init__(message)


class PayloadValidationError(FulfillmentError):
    """Raised when a verified webhook payload does not match the event schema."""

    def __init__(self, message: str, errors: list[dict] | None = None):
        self.message = message
        self.errors = errors or []
        super().__init__(self.message)


class OrderConflictError(FulfillmentError):
    """Raised when an order already exists for a checkout session."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Order already exists for session {session_id}")


class StoreError(FulfillmentError):
    """Raised when the order store or product catalog is unavailable."""

    def __init__(self, message: str, operation: str | None = None):
        self.message = message
        self.operation = operation
        super().__init__(self.message)
