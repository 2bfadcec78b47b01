"""Stripe checkout webhook consumer: orders, stock and notifications."""

__version__ = "1.0.0"
