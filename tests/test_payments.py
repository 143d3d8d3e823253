"""Tests for payment intent opening and payment status interpretation."""

from unittest.mock import MagicMock

import pytest

from helpers import make_booking

from experiencess.domain.payments import (
    NOT_READY_MESSAGE,
    create_payment_intent,
    interpret_payment_status,
    verify_payment,
)
from experiencess.errors import BookingNotFoundError, BookingNotReadyError, SupplierApiError


class TestInterpretPaymentStatus:
    @pytest.mark.parametrize("status", ["succeeded", "processing", "requires_capture"])
    def test_success_statuses(self, status):
        outcome = interpret_payment_status(status)
        assert outcome.success is True
        assert outcome.report_error is False

    def test_requires_action_is_not_an_error(self):
        outcome = interpret_payment_status("requires_action")
        assert outcome.success is False
        assert outcome.message == "Additional verification required. Please complete the verification."
        assert outcome.report_error is False

    def test_card_declined(self):
        outcome = interpret_payment_status("requires_payment_method")
        assert outcome.success is False
        assert outcome.message == "Your card was declined. Please try a different payment method."
        assert outcome.error == "Card declined"

    def test_requires_confirmation(self):
        outcome = interpret_payment_status("requires_confirmation")
        assert outcome.message == "Please try again"
        assert outcome.report_error is False

    def test_no_intent_returned(self):
        outcome = interpret_payment_status(None)
        assert outcome.success is False
        assert outcome.error == "No payment intent returned"

    def test_unknown_status(self):
        outcome = interpret_payment_status("canceled")
        assert outcome.message == "Payment status: canceled. Please try again."
        assert outcome.error == "Unexpected payment status: canceled"

    def test_explicit_error_wins_over_status(self):
        outcome = interpret_payment_status("succeeded", error="Your card has insufficient funds.")
        assert outcome.success is False
        assert outcome.message == "Your card has insufficient funds."
        assert outcome.error == "Your card has insufficient funds."


class TestCreatePaymentIntent:
    def test_not_ready(self, fake_client):
        fake_client.booking = make_booking(can_commit=False)

        with pytest.raises(BookingNotReadyError, match=NOT_READY_MESSAGE):
            create_payment_intent("booking-123", client=fake_client)

        assert "get_stripe_payment_intent" not in fake_client.call_names()

    def test_not_found(self, fake_client):
        with pytest.raises(BookingNotFoundError):
            create_payment_intent("missing", client=fake_client)

    def test_returns_intent(self, fake_client):
        fake_client.booking = make_booking(can_commit=True)
        fake_client.payment_intent = {
            "id": "pi_123",
            "clientSecret": "pi_123_secret_abc",
            "apiKey": "pk_test_supplier",
            "amount": 5000,
        }

        start = create_payment_intent("booking-123", client=fake_client)

        assert start.skip_payment is False
        assert start.intent.client_secret == "pi_123_secret_abc"
        assert start.intent.publishable_key == "pk_test_supplier"
        assert start.intent.amount == 5000

    def test_publishable_key_falls_back_to_stripe_client(self, fake_client):
        fake_client.booking = make_booking(can_commit=True)
        fake_client.payment_intent = {"id": "pi_1", "clientSecret": "s"}
        stripe_client = MagicMock(publishable_key="pk_test_local")

        start = create_payment_intent("booking-123", client=fake_client, stripe_client=stripe_client)

        assert start.intent.publishable_key == "pk_test_local"

    def test_null_intent_skips_payment(self, fake_client):
        fake_client.booking = make_booking(can_commit=True)

        start = create_payment_intent("booking-123", client=fake_client)

        assert start.skip_payment is True
        assert start.booking is fake_client.booking

    @pytest.mark.parametrize(
        "message",
        ["No Stripe payment intent for booking", "Payment intent not available (on account)"],
    )
    def test_no_intent_error_skips_payment(self, fake_client, message):
        fake_client.booking = make_booking(can_commit=True)
        fake_client.payment_intent_error = SupplierApiError(message)

        assert create_payment_intent("booking-123", client=fake_client).skip_payment is True

    def test_other_supplier_errors_propagate(self, fake_client):
        fake_client.booking = make_booking(can_commit=True)
        fake_client.payment_intent_error = SupplierApiError("Internal supplier error")

        with pytest.raises(SupplierApiError, match="Internal supplier error"):
            create_payment_intent("booking-123", client=fake_client)


class TestVerifyPayment:
    def test_uses_retrieved_status(self):
        stripe_client = MagicMock()
        stripe_client.retrieve_payment_intent.return_value = {"status": "requires_capture"}

        assert verify_payment("pi_1", stripe_client=stripe_client).success is True
        stripe_client.retrieve_payment_intent.assert_called_once_with("pi_1")
