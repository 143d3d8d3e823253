"""Thin wrapper around Stripe SDK.

Purpose:
- Encapsulate Stripe API calls so domain code doesn't import stripe.* directly.
- Payment intents are opened by the booking supplier; this side only reads
  them back for server-side confirmation.
- Never log full Stripe payloads (only IDs + correlation metadata).
"""

from __future__ import annotations

import logging
import os
from typing import Any

import stripe

logger = logging.getLogger(__name__)


class StripeClient:
    """Wrapper for Stripe PaymentIntent reads.

    Usage:
        client = StripeClient()  # reads STRIPE_SECRET_KEY from env
        intent = client.retrieve_payment_intent("pi_123")
        print(intent["status"])
    """

    def __init__(self, api_key: str | None = None, publishable_key: str | None = None) -> None:
        """Initialize the Stripe client.

        Args:
            api_key: Stripe secret key. Defaults to STRIPE_SECRET_KEY env var.
            publishable_key: Key handed to the browser when the supplier's
                intent carries none. Defaults to STRIPE_PUBLISHABLE_KEY.

        Raises:
            RuntimeError: If no API key is provided or found in environment.
        """
        self._api_key = api_key or os.environ.get("STRIPE_SECRET_KEY")
        if not self._api_key:
            raise RuntimeError(
                "Stripe API key not provided. "
                "Set STRIPE_SECRET_KEY or pass api_key parameter."
            )
        self.publishable_key = publishable_key or os.environ.get("STRIPE_PUBLISHABLE_KEY") or None

    def retrieve_payment_intent(
        self,
        payment_intent_id: str,
        *,
        correlation_id: str | None = None,
    ) -> dict[str, Any]:
        """Retrieve an existing PaymentIntent.

        Args:
            payment_intent_id: The Stripe PaymentIntent ID.
            correlation_id: Optional correlation ID for logging.

        Returns:
            Dict with payment_intent_id, status, amount, currency and
            booking_id (from metadata, if set).
        """
        client = stripe.StripeClient(self._api_key)

        intent = client.v1.payment_intents.retrieve(payment_intent_id)

        logger.info(
            "stripe_payment_intent_retrieved",
            extra={
                "payment_intent_id": intent.id,
                "status": intent.status,
                "correlation_id": correlation_id,
            },
        )

        metadata = intent.metadata or {}
        return {
            "payment_intent_id": intent.id,
            "status": intent.status,
            "amount": intent.amount,
            "currency": intent.currency,
            "booking_id": metadata.get("bookingId") or metadata.get("booking_id"),
        }
