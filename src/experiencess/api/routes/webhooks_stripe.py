"""Stripe webhook route - public endpoint for Stripe events.

Security rules:
- Validate Stripe-Signature on every request.
- Never log payload or signature header.
- Return 5xx if handling fails (so Stripe retries).
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from experiencess.domain.models import BookingState
from experiencess.infra.db import txn
from experiencess.infra.repositories import bookings_repository
from experiencess.observability.correlation import get_correlation_id
from experiencess.observability.logging import get_logger
from experiencess.observability.redaction import safe_log_context
from experiencess.stripe.webhook import (
    InvalidPayloadError,
    InvalidSignatureError,
    StripeWebhookEvent,
    verify_and_extract,
)

if TYPE_CHECKING:
    from experiencess.holibob.client import HolibobClient

router = APIRouter(tags=["webhooks"])

logger = get_logger(__name__)

PAYMENT_SUCCEEDED_EVENTS = ("payment_intent.succeeded", "checkout.session.completed")
PAYMENT_FAILED_EVENTS = ("payment_intent.payment_failed", "checkout.session.expired")

_holibob_client: HolibobClient | None = None


def _get_holibob_client() -> HolibobClient:
    """Get holibob client (allows override in tests)."""
    global _holibob_client
    if _holibob_client is None:
        from experiencess.holibob.client import HolibobClient
        _holibob_client = HolibobClient()
    return _holibob_client


def _get_webhook_secret() -> str:
    """Get Stripe webhook secret from environment."""
    secret = os.environ.get("STRIPE_WEBHOOK_SECRET", "")
    if not secret:
        raise RuntimeError("STRIPE_WEBHOOK_SECRET not configured")
    return secret


def handle_payment_event(event: StripeWebhookEvent) -> str:
    """Record the payment result on the local booking record.

    Returns a short result tag for logging.
    """
    if event.event_type in PAYMENT_SUCCEEDED_EVENTS:
        if not event.booking_id:
            return "no_booking"
        booking = _get_holibob_client().get_booking(event.booking_id)
        if booking is not None and booking.state in (BookingState.CONFIRMED, BookingState.COMPLETED):
            return "already_confirmed"
        with txn() as cur:
            bookings_repository.update_booking_status(
                cur,
                booking_id=event.booking_id,
                status="PAYMENT_RECEIVED",
                payment_intent_id=event.object_id,
            )
        return "payment_recorded"

    if event.event_type in PAYMENT_FAILED_EVENTS:
        if not event.booking_id:
            return "no_booking"
        with txn() as cur:
            bookings_repository.update_booking_status(
                cur,
                booking_id=event.booking_id,
                status="PAYMENT_FAILED",
            )
        return "payment_failed_recorded"

    return "ignored"


@router.post("/api/payment/webhook")
async def stripe_webhook(request: Request) -> JSONResponse:
    """Receive Stripe webhook events.

    Returns:
        200 ``{"received": true}`` once handled (including ignored types).
        400 if the signature is missing or invalid.
        500 if the secret is missing or handling fails.
    """
    correlation_id = get_correlation_id()

    signature = request.headers.get("Stripe-Signature")
    if not signature:
        return JSONResponse(status_code=400, content={"error": "Missing Stripe signature"})

    payload_bytes = await request.body()

    try:
        webhook_secret = _get_webhook_secret()
    except RuntimeError:
        logger.error(
            "stripe_webhook_secret_missing",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        return JSONResponse(status_code=500, content={"error": "Server configuration error"})

    try:
        event = verify_and_extract(payload_bytes, signature, webhook_secret)
    except (InvalidSignatureError, InvalidPayloadError):
        return JSONResponse(status_code=400, content={"error": "Invalid signature"})

    logger.info(
        "stripe_webhook_received",
        extra={
            "extra_fields": safe_log_context(
                correlationId=correlation_id,
                event_id_prefix=event.event_id[:8],
                event_type=event.event_type,
            )
        },
    )

    try:
        result = handle_payment_event(event)
    except Exception:
        logger.exception(
            "stripe_webhook_handler_failed",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=correlation_id,
                    event_type=event.event_type,
                )
            },
        )
        return JSONResponse(status_code=500, content={"error": "Webhook handler failed"})

    logger.info(
        "stripe_webhook_handled",
        extra={"booking_id": event.booking_id, "result": result},
    )
    return JSONResponse(status_code=200, content={"received": True})
