"""Payment domain logic.

The supplier opens the Stripe PaymentIntent for a booking; this module hands
its client secret to the payment form and interprets the status the form
reports back. Bookings paid on account have no intent and skip payment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from experiencess.errors import BookingNotReadyError, SupplierApiError

if TYPE_CHECKING:
    from experiencess.domain.models import Booking
    from experiencess.holibob.client import HolibobClient
    from experiencess.stripe.client import StripeClient

logger = logging.getLogger(__name__)

NOT_READY_MESSAGE = "Please complete all required information before payment"

# Statuses after which the payment is final enough to commit the booking
SUCCESS_STATUSES = ("succeeded", "processing", "requires_capture")


@dataclass
class PaymentIntentInfo:
    publishable_key: str | None
    client_secret: str
    payment_intent_id: str
    amount: int | None


@dataclass
class PaymentStart:
    """Result of opening payment: either an intent to confirm or skip_payment."""

    booking: Booking
    intent: PaymentIntentInfo | None = None

    @property
    def skip_payment(self) -> bool:
        return self.intent is None


@dataclass
class PaymentOutcome:
    """How the checkout should react to a payment confirmation result.

    ``message`` is the copy shown to the guest; ``error`` is what gets
    reported to the error callback (None when nothing is reported).
    """

    success: bool
    message: str | None = None
    error: str | None = None

    @property
    def report_error(self) -> bool:
        return self.error is not None


def _is_no_intent(exc: SupplierApiError) -> bool:
    text = str(exc).lower()
    return "no stripe payment intent" in text or ("payment intent" in text and "not available" in text)


def create_payment_intent(
    booking_id: str,
    *,
    client: HolibobClient,
    stripe_client: StripeClient | None = None,
) -> PaymentStart:
    """Fetch the supplier's Stripe intent for a booking ready to pay.

    Raises:
        BookingNotFoundError: If the booking does not exist.
        BookingNotReadyError: If canCommit is false.
        SupplierApiError / TransportError: Other supplier failures.
    """
    booking = client.get_questions(booking_id)
    if not booking.can_commit:
        raise BookingNotReadyError(NOT_READY_MESSAGE)

    try:
        raw = client.get_stripe_payment_intent(booking_id)
    except SupplierApiError as e:
        if not _is_no_intent(e):
            raise
        raw = None

    if not raw:
        logger.info("payment_skipped_on_account", extra={"booking_id": booking_id})
        return PaymentStart(booking=booking)

    intent = PaymentIntentInfo(
        publishable_key=raw.get("apiKey") or (stripe_client.publishable_key if stripe_client else None),
        client_secret=raw["clientSecret"],
        payment_intent_id=raw["id"],
        amount=raw.get("amount"),
    )
    logger.info(
        "payment_intent_opened",
        extra={"booking_id": booking_id, "payment_intent_id": intent.payment_intent_id},
    )
    return PaymentStart(booking=booking, intent=intent)


def interpret_payment_status(status: str | None, error: str | None = None) -> PaymentOutcome:
    """Map a confirmation result to the checkout reaction.

    An explicit error wins over any status. Success statuses advance to commit;
    ``requires_action`` asks for verification without reporting an error.
    """
    if error:
        return PaymentOutcome(success=False, message=error, error=error)
    if status is None:
        return PaymentOutcome(
            success=False,
            message="Payment could not be processed. Please try again.",
            error="No payment intent returned",
        )
    if status in SUCCESS_STATUSES:
        return PaymentOutcome(success=True)
    if status == "requires_action":
        return PaymentOutcome(
            success=False,
            message="Additional verification required. Please complete the verification.",
        )
    if status == "requires_payment_method":
        return PaymentOutcome(
            success=False,
            message="Your card was declined. Please try a different payment method.",
            error="Card declined",
        )
    if status == "requires_confirmation":
        return PaymentOutcome(success=False, message="Please try again")
    return PaymentOutcome(
        success=False,
        message=f"Payment status: {status}. Please try again.",
        error=f"Unexpected payment status: {status}",
    )


def verify_payment(payment_intent_id: str, *, stripe_client: StripeClient) -> PaymentOutcome:
    """Server-side check of an intent's status before committing."""
    intent = stripe_client.retrieve_payment_intent(payment_intent_id)
    return interpret_payment_status(intent["status"])
