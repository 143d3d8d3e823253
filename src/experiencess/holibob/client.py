"""Holibob partner API client (GraphQL over HTTPS).

Purpose:
- Encapsulate supplier calls so domain code never builds GraphQL itself.
- Sign requests with HMAC-SHA256 when an API secret is configured.
- Retry transport failures and 5xx with exponential backoff; never retry 4xx.
- Never log request bodies (they carry guest PII), only operation names and IDs.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import os
import time
from typing import Any, Callable

import requests

from experiencess.domain.models import (
    AvailabilityDetail,
    AvailabilityList,
    Booking,
)
from experiencess.errors import BookingNotFoundError, SupplierApiError, TransportError
from experiencess.holibob import queries
from experiencess.infra.time import utc_now

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30
DEFAULT_RETRIES = 3


class HolibobClient:
    """Supplier client for availability, booking, question and commit calls.

    Usage:
        client = HolibobClient()  # reads HOLIBOB_* from env
        booking = client.create_booking()
        client.add_availability(booking.id, "avail-123")
    """

    def __init__(
        self,
        api_url: str | None = None,
        api_key: str | None = None,
        partner_id: str | None = None,
        api_secret: str | None = None,
        *,
        timeout: float | None = None,
        retries: int | None = None,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            api_url: GraphQL endpoint. Defaults to HOLIBOB_API_URL.
            api_key: Partner API key. Defaults to HOLIBOB_API_KEY.
            partner_id: Partner ID. Defaults to HOLIBOB_PARTNER_ID.
            api_secret: Optional signing secret. Defaults to HOLIBOB_API_SECRET.
            timeout: Per-request timeout in seconds.
            retries: Attempts per call for retryable failures.
            session: Optional requests session (tests inject one).
            sleep: Backoff sleep function.

        Raises:
            RuntimeError: If URL, key or partner ID is missing.
        """
        self._api_url = api_url or os.environ.get("HOLIBOB_API_URL", "")
        self._api_key = api_key or os.environ.get("HOLIBOB_API_KEY", "")
        self._partner_id = partner_id or os.environ.get("HOLIBOB_PARTNER_ID", "")
        self._api_secret = api_secret or os.environ.get("HOLIBOB_API_SECRET") or None

        if not self._api_url or not self._api_key or not self._partner_id:
            raise RuntimeError(
                "Missing Holibob config: HOLIBOB_API_URL, HOLIBOB_API_KEY "
                "and HOLIBOB_PARTNER_ID required"
            )

        self._timeout = timeout or float(
            os.environ.get("HOLIBOB_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)
        )
        self._retries = retries or int(os.environ.get("HOLIBOB_RETRIES", DEFAULT_RETRIES))
        self._session = session or requests.Session()
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _sign(self, timestamp: str, body: str) -> str:
        """HMAC-SHA256 hex digest of timestamp + body."""
        return hmac.new(
            self._api_secret.encode(),
            f"{timestamp}{body}".encode(),
            hashlib.sha256,
        ).hexdigest()

    def _headers(self, body: str) -> dict[str, str]:
        headers = {
            "X-API-Key": self._api_key,
            "X-Partner-Id": self._partner_id,
            "Content-Type": "application/json",
        }
        if self._api_secret:
            timestamp = utc_now().isoformat()
            headers["X-Holibob-Date"] = timestamp
            headers["X-Holibob-Signature"] = self._sign(timestamp, body)
        return headers

    @staticmethod
    def _error_message(payload: Any) -> str | None:
        if isinstance(payload, dict):
            errors = payload.get("errors")
            if isinstance(errors, list) and errors:
                first = errors[0]
                if isinstance(first, dict) and first.get("message"):
                    return str(first["message"])
            if payload.get("error"):
                return str(payload["error"])
        return None

    def _execute(self, operation: str, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """POST a GraphQL document and return its ``data`` object.

        Raises:
            SupplierApiError: Structured error body (GraphQL ``errors`` or 4xx with message).
            TransportError: Network failure or non-2xx without a structured body.
        """
        body = json.dumps({"query": query, "variables": variables})
        last_error: Exception | None = None

        for attempt in range(1, self._retries + 1):
            try:
                resp = self._session.post(
                    self._api_url,
                    data=body,
                    headers=self._headers(body),
                    timeout=self._timeout,
                )
            except requests.RequestException as e:
                last_error = TransportError(f"Request to booking provider failed: {operation}")
                last_error.__cause__ = e
                logger.warning(
                    "holibob_request_failed",
                    extra={"operation": operation, "attempt": attempt, "error_type": type(e).__name__},
                )
            else:
                try:
                    payload = resp.json()
                except ValueError:
                    payload = None

                message = self._error_message(payload)

                if 400 <= resp.status_code < 500:
                    logger.warning(
                        "holibob_client_error",
                        extra={"operation": operation, "status_code": resp.status_code},
                    )
                    if message:
                        raise SupplierApiError(message, status_code=resp.status_code)
                    raise TransportError(status_code=resp.status_code)

                if resp.status_code >= 500:
                    last_error = (
                        SupplierApiError(message, status_code=resp.status_code)
                        if message
                        else TransportError(status_code=resp.status_code)
                    )
                    logger.warning(
                        "holibob_server_error",
                        extra={"operation": operation, "attempt": attempt, "status_code": resp.status_code},
                    )
                elif payload is None:
                    last_error = TransportError("Booking provider returned an unreadable response")
                elif message:
                    # GraphQL-level errors are business answers, not transient
                    raise SupplierApiError(
                        message,
                        status_code=resp.status_code,
                        errors=payload.get("errors") if isinstance(payload, dict) else None,
                    )
                else:
                    return payload.get("data") or {}

            if attempt < self._retries:
                self._sleep(2**attempt)

        assert last_error is not None
        raise last_error

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def _availability_list(
        self,
        product_id: str,
        session_id: str | None = None,
        option_answers: list[dict[str, str]] | None = None,
    ) -> AvailabilityList:
        data = self._execute(
            "availabilityList",
            queries.AVAILABILITY_LIST_QUERY,
            {"productId": product_id, "sessionId": session_id, "optionList": option_answers},
        )
        return AvailabilityList.from_api(data.get("availabilityList") or {})

    def discover_availability(self, product_id: str, date_from: str, date_to: str) -> AvailabilityList:
        """List bookable slots in a date range.

        The first call returns the date-range options; answering them with
        ``date_from``/``date_to`` returns the slots.
        """
        result = self._availability_list(product_id)

        answers: list[dict[str, str]] = []
        for option in result.options:
            label = option.label.lower()
            if "START_DATE" in option.id or "start" in label:
                answers.append({"id": option.id, "value": date_from})
            elif "END_DATE" in option.id or "end" in label:
                answers.append({"id": option.id, "value": date_to})

        if answers:
            result = self._availability_list(product_id, result.session_id, answers)

        logger.info(
            "availability_discovered",
            extra={"product_id": product_id, "slot_count": len(result.slots)},
        )
        return result

    def get_availability(self, availability_id: str) -> AvailabilityDetail:
        data = self._execute("availability", queries.AVAILABILITY_QUERY, {"id": availability_id})
        node = data.get("availability")
        if not node:
            raise SupplierApiError(f"Availability not found: {availability_id}", status_code=404)
        return AvailabilityDetail.from_api(node)

    def _set_availability(self, availability_id: str, operation: str, input_: dict) -> AvailabilityDetail:
        data = self._execute(
            operation,
            queries.AVAILABILITY_SET_QUERY,
            {"id": availability_id, "input": input_},
        )
        node = data.get("availability")
        if not node:
            raise SupplierApiError(f"Availability not found: {availability_id}", status_code=404)
        return AvailabilityDetail.from_api(node)

    def set_options(self, availability_id: str, answers: list[tuple[str, str]]) -> AvailabilityDetail:
        return self._set_availability(
            availability_id,
            "availabilitySetOptions",
            {"optionList": [{"id": oid, "value": value} for oid, value in answers]},
        )

    def set_pricing(self, availability_id: str, category_counts: list[tuple[str, int]]) -> AvailabilityDetail:
        return self._set_availability(
            availability_id,
            "availabilitySetPricing",
            {"pricingCategoryList": [{"id": cid, "units": units} for cid, units in category_counts]},
        )

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    def create_booking(self, **input_: Any) -> Booking:
        """Create an empty OPEN booking. Question auto-fill is always requested."""
        data = self._execute(
            "bookingCreate",
            queries.BOOKING_CREATE_MUTATION,
            {"input": {"autoFillQuestions": True, "paymentType": "ON_ACCOUNT", **input_}},
        )
        booking = Booking.from_api(data.get("bookingCreate") or {})
        logger.info("booking_created", extra={"booking_id": booking.id})
        return booking

    def add_availability(self, booking_id: str, availability_id: str) -> Booking:
        """Attach a configured availability and return the refreshed booking."""
        self._execute(
            "bookingAddAvailability",
            queries.BOOKING_ADD_AVAILABILITY_MUTATION,
            {"input": {"bookingId": booking_id, "availabilityId": availability_id}},
        )
        logger.info(
            "booking_availability_added",
            extra={"booking_id": booking_id, "availability_id": availability_id},
        )
        return self.get_questions(booking_id)

    def get_questions(self, booking_id: str) -> Booking:
        """Booking with its three-level question tree.

        Raises:
            BookingNotFoundError: If the supplier returns no booking.
        """
        data = self._execute("bookingQuestions", queries.BOOKING_QUESTIONS_QUERY, {"id": booking_id})
        node = data.get("booking")
        if not node:
            raise BookingNotFoundError(booking_id)
        return Booking.from_api(node, booking_id=booking_id)

    def answer_questions(self, booking_id: str, payload: dict[str, Any]) -> Booking:
        """Submit answers in supplier format; the returned booking carries a fresh canCommit."""
        data = self._execute(
            "bookingAnswerQuestions",
            queries.BOOKING_ANSWER_QUESTIONS_QUERY,
            {"id": booking_id, "input": payload},
        )
        node = data.get("booking")
        if not node:
            raise BookingNotFoundError(booking_id)
        return Booking.from_api(node, booking_id=booking_id)

    def commit(self, booking_id: str) -> Booking:
        """Finalize the booking. The supplier answers PENDING until it confirms."""
        data = self._execute(
            "bookingCommit",
            queries.BOOKING_COMMIT_MUTATION,
            {"bookingSelector": {"id": booking_id}},
        )
        return Booking.from_api(data.get("bookingCommit") or {}, booking_id=booking_id)

    def get_booking(self, booking_id: str) -> Booking | None:
        data = self._execute("booking", queries.BOOKING_FULL_QUERY, {"id": booking_id})
        node = data.get("booking")
        if not node:
            return None
        return Booking.from_api(node, booking_id=booking_id)

    def get_booking_state(self, booking_id: str) -> Booking:
        data = self._execute("bookingState", queries.BOOKING_STATE_QUERY, {"id": booking_id})
        node = data.get("booking")
        if not node:
            raise BookingNotFoundError(booking_id)
        return Booking.from_api(node, booking_id=booking_id)

    def cancel_booking(self, booking_id: str, reason: str | None = None) -> Booking:
        data = self._execute(
            "bookingCancel",
            queries.BOOKING_CANCEL_MUTATION,
            {"bookingSelector": {"id": booking_id}, "reason": reason},
        )
        return Booking.from_api(data.get("bookingCancel") or {}, booking_id=booking_id)

    def get_stripe_payment_intent(self, booking_id: str) -> dict[str, Any] | None:
        """Stripe payment intent the supplier opened for this booking, if any.

        Returns None for bookings paid on account (no intent to confirm).
        """
        data = self._execute(
            "bookingStripePaymentIntent",
            queries.BOOKING_STRIPE_PAYMENT_INTENT_QUERY,
            {"id": booking_id},
        )
        node = data.get("booking")
        if not node:
            raise BookingNotFoundError(booking_id)
        return node.get("paymentIntent") or None
