"""Tests for the Stripe SDK wrappers (SDK calls mocked)."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import stripe

from experiencess.stripe.client import StripeClient
from experiencess.stripe.webhook import (
    InvalidPayloadError,
    InvalidSignatureError,
    verify_and_extract,
)


class TestStripeClient:
    def test_missing_key_raises(self, monkeypatch):
        monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)
        with pytest.raises(RuntimeError, match="STRIPE_SECRET_KEY"):
            StripeClient()

    def test_publishable_key_from_env(self, monkeypatch):
        monkeypatch.setenv("STRIPE_PUBLISHABLE_KEY", "pk_test_env")
        client = StripeClient(api_key="sk_test_x")
        assert client.publishable_key == "pk_test_env"

    def test_retrieve_payment_intent(self):
        intent = MagicMock(
            id="pi_123",
            status="requires_capture",
            amount=5000,
            currency="gbp",
            metadata={"bookingId": "booking-123"},
        )
        sdk = MagicMock()
        sdk.v1.payment_intents.retrieve.return_value = intent

        with patch("experiencess.stripe.client.stripe.StripeClient", return_value=sdk) as ctor:
            result = StripeClient(api_key="sk_test_x").retrieve_payment_intent("pi_123")

        ctor.assert_called_once_with("sk_test_x")
        sdk.v1.payment_intents.retrieve.assert_called_once_with("pi_123")
        assert result == {
            "payment_intent_id": "pi_123",
            "status": "requires_capture",
            "amount": 5000,
            "currency": "gbp",
            "booking_id": "booking-123",
        }


class TestVerifyAndExtract:
    def test_extracts_minimal_fields(self):
        event = {
            "id": "evt_1",
            "type": "payment_intent.payment_failed",
            "data": {
                "object": {
                    "id": "pi_1",
                    "metadata": {"booking_id": "booking-9"},
                    "last_payment_error": {"message": "Your card was declined."},
                }
            },
        }
        with patch("stripe.Webhook.construct_event", return_value=event):
            result = verify_and_extract(b"{}", "t=1,v1=sig", "whsec_x")

        assert result.event_id == "evt_1"
        assert result.object_id == "pi_1"
        assert result.booking_id == "booking-9"
        assert result.failure_message == "Your card was declined."

    def test_bad_signature(self):
        error = stripe.SignatureVerificationError("bad", "t=1,v1=sig")
        with patch("stripe.Webhook.construct_event", side_effect=error):
            with pytest.raises(InvalidSignatureError):
                verify_and_extract(b"{}", "t=1,v1=sig", "whsec_x")

    def test_unparseable_payload(self):
        with patch("stripe.Webhook.construct_event", side_effect=ValueError("json")):
            with pytest.raises(InvalidPayloadError):
                verify_and_extract(b"not json", "t=1,v1=sig", "whsec_x")

    def test_missing_type(self):
        with patch("stripe.Webhook.construct_event", return_value={"id": "evt_1"}):
            with pytest.raises(InvalidPayloadError, match="Missing event id or type"):
                verify_and_extract(b"{}", "t=1,v1=sig", "whsec_x")
