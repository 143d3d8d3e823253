"""Booking routes: create, read, questions, payment intent, commit, cancel.

Errors come back as ``{"error": message}``; supplier "not found" answers
map to 404. Local records and funnel events are best-effort and never
change the response.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from experiencess.api.responses import error, ok
from experiencess.domain import questions as questions_domain
from experiencess.domain.answers import Complete, GuestData, GuestRecord, submit_answers
from experiencess.domain.commit import commit
from experiencess.domain.checkout_flow import confirm_wait_settings
from experiencess.domain.payments import (
    NOT_READY_MESSAGE,
    create_payment_intent,
    verify_payment,
)
from experiencess.domain.questions import displayed_questions, unanswered_required_count
from experiencess.errors import (
    BookingNotFoundError,
    BookingNotReadyError,
    SupplierApiError,
    TransportError,
)
from experiencess.infra.db import txn
from experiencess.infra.repositories import bookings_repository
from experiencess.infra.repositories.funnel_repository import FunnelStep, track_funnel_event
from experiencess.observability.correlation import bind_booking_id, unbind_booking_id
from experiencess.observability.logging import get_logger

if TYPE_CHECKING:
    from experiencess.domain.models import Booking
    from experiencess.holibob.client import HolibobClient
    from experiencess.stripe.client import StripeClient

router = APIRouter(prefix="/api/booking", tags=["booking"])

logger = get_logger(__name__)

NOT_FOUND_MESSAGE = "Booking not found"

# Module-level clients (lazy init, can be overridden for tests)
_holibob_client: HolibobClient | None = None
_stripe_client: StripeClient | None = None


def _get_holibob_client() -> HolibobClient:
    """Get holibob client (allows override in tests)."""
    global _holibob_client
    if _holibob_client is None:
        from experiencess.holibob.client import HolibobClient
        _holibob_client = HolibobClient()
    return _holibob_client


def _get_stripe_client() -> StripeClient:
    """Get stripe client (allows override in tests)."""
    global _stripe_client
    if _stripe_client is None:
        from experiencess.stripe.client import StripeClient
        _stripe_client = StripeClient()
    return _stripe_client


class CreateBookingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    availability_id: str | None = Field(default=None, alias="availabilityId")
    product_id: str | None = Field(default=None, alias="productId")
    product_name: str | None = Field(default=None, alias="productName")
    site_id: str | None = Field(default=None, alias="siteId")


class GuestRecordBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_name: str = Field(..., alias="firstName")
    last_name: str = Field(..., alias="lastName")
    email: str | None = None
    phone: str | None = None
    is_lead_guest: bool = Field(default=False, alias="isLeadGuest")


class QuestionAnswerBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question_id: str = Field(..., alias="questionId")
    value: str


class AnswerQuestionsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    customer_email: str = Field(..., alias="customerEmail")
    customer_phone: str = Field(..., alias="customerPhone")
    guests: list[GuestRecordBody] = Field(..., min_length=1)
    terms_accepted: bool = Field(default=False, alias="termsAccepted")
    question_answers: list[QuestionAnswerBody] = Field(default=[], alias="questionAnswers")

    def to_guest_data(self) -> GuestData:
        return GuestData(
            customer_email=self.customer_email,
            customer_phone=self.customer_phone,
            guests=[
                GuestRecord(
                    first_name=g.first_name,
                    last_name=g.last_name,
                    email=g.email,
                    phone=g.phone,
                    is_lead_guest=g.is_lead_guest,
                )
                for g in self.guests
            ],
            terms_accepted=self.terms_accepted,
            question_answers=[(a.question_id, a.value) for a in self.question_answers],
        )


class CommitRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    booking_id: str = Field(..., alias="bookingId")
    wait_for_confirmation: bool = Field(default=True, alias="waitForConfirmation")
    max_wait_seconds: float | None = Field(default=None, ge=0, alias="maxWaitSeconds")
    payment_intent_id: str | None = Field(default=None, alias="paymentIntentId")


class CancelRequest(BaseModel):
    reason: str | None = None


def _persist(event: str, booking_id: str, fn: Callable[[Any], Any]) -> None:
    """Run a local-record write; failures are logged only."""
    try:
        with txn() as cur:
            fn(cur)
    except Exception:
        logger.exception(event, extra={"booking_id": booking_id})


def _booking_view(booking: Booking) -> dict[str, Any]:
    return {
        "id": booking.id,
        "code": booking.code,
        "state": booking.state,
        "can_commit": booking.can_commit,
        "total_price": booking.total_price.gross if booking.total_price else None,
        "currency": booking.total_price.currency if booking.total_price else None,
        "voucher_url": booking.voucher_url,
    }


def _failure(e: Exception, booking_id: str, *, fallback: str = "Request failed") -> JSONResponse:
    if isinstance(e, BookingNotFoundError) or (isinstance(e, SupplierApiError) and e.is_not_found):
        return error(NOT_FOUND_MESSAGE, 404)
    if isinstance(e, SupplierApiError):
        logger.warning(
            "booking_supplier_error",
            extra={"booking_id": booking_id, "status_code": e.status_code},
        )
        return error(str(e), 400)
    if isinstance(e, TransportError):
        logger.error("booking_transport_error", extra={"booking_id": booking_id})
        return error(str(e), 502)
    logger.exception("booking_request_failed", extra={"booking_id": booking_id})
    return error(fallback, 500)


@router.post("")
def create_booking(body: CreateBookingRequest) -> JSONResponse:
    """Create a booking and attach the configured availability."""
    client = _get_holibob_client()
    try:
        booking = client.create_booking()
        if body.availability_id:
            booking = client.add_availability(booking.id, body.availability_id)
    except Exception as e:
        return _failure(e, "", fallback="Failed to create booking")

    total = booking.total_price
    _persist(
        "booking_record_failed",
        booking.id,
        lambda cur: bookings_repository.record_booking(
            cur,
            booking_id=booking.id,
            status="OPEN",
            product_id=body.product_id,
            product_name=body.product_name,
            booking_code=booking.code,
            total_amount=total.gross if total else None,
            currency=total.currency if total else None,
            guest_count=booking.person_count,
            site_id=body.site_id,
        ),
    )
    track_funnel_event(
        FunnelStep.BOOKING_CREATED,
        booking_id=booking.id,
        product_id=body.product_id,
        site_id=body.site_id,
    )
    return ok(_booking_view(booking), status_code=201)


@router.post("/commit")
def commit_booking(body: CommitRequest) -> JSONResponse:
    """Commit a paid booking and wait for the supplier's confirmation.

    A REJECTED booking is a normal response with ``outcome: "rejected"``;
    a wait that runs out returns ``outcome: "pending"``.
    """
    token = bind_booking_id(body.booking_id)
    try:
        if body.payment_intent_id:
            payment = verify_payment(body.payment_intent_id, stripe_client=_get_stripe_client())
            if not payment.success:
                return error(payment.message or "Payment not completed", 402)

        env_wait, interval = confirm_wait_settings()
        result = commit(
            body.booking_id,
            body.wait_for_confirmation,
            env_wait if body.max_wait_seconds is None else body.max_wait_seconds,
            client=_get_holibob_client(),
            poll_interval_seconds=interval,
        )
    except Exception as e:
        return _failure(e, body.booking_id, fallback="Failed to commit booking")
    finally:
        unbind_booking_id(token)

    state = result.booking.state.value if result.booking.state else "PENDING"
    _persist(
        "booking_status_update_failed",
        body.booking_id,
        lambda cur: bookings_repository.update_booking_status(
            cur,
            booking_id=body.booking_id,
            status=state if state in bookings_repository.VALID_STATUSES else "PENDING",
            voucher_url=result.voucher_url,
            payment_intent_id=body.payment_intent_id,
        ),
    )
    if result.is_confirmed:
        track_funnel_event(FunnelStep.BOOKING_COMPLETED, booking_id=body.booking_id)

    return ok(
        {
            "booking": _booking_view(result.booking),
            "is_confirmed": result.is_confirmed,
            "voucher_url": result.voucher_url,
            "outcome": result.outcome,
        }
    )


@router.get("/{booking_id}")
def get_booking(booking_id: str) -> JSONResponse:
    try:
        booking = _get_holibob_client().get_booking(booking_id)
    except Exception as e:
        return _failure(e, booking_id, fallback="Failed to fetch booking")
    if booking is None:
        return error(NOT_FOUND_MESSAGE, 404)
    return ok(booking)


@router.get("/{booking_id}/questions")
def get_questions(booking_id: str) -> JSONResponse:
    """Question tree plus the subset the guest form should display."""
    try:
        summary = questions_domain.resolve(booking_id, client=_get_holibob_client())
    except Exception as e:
        return _failure(e, booking_id, fallback="Failed to fetch booking questions")

    displayed = displayed_questions(summary)
    return ok(
        {
            "booking": _booking_view(summary.booking),
            "booking_questions": summary.booking_questions,
            "availability_questions": summary.availability_questions,
            "can_commit": summary.can_commit,
            "unanswered_count": unanswered_required_count(summary),
            "displayed": {
                "booking": displayed.booking,
                "availabilities": displayed.availabilities,
                "persons": displayed.persons,
            },
        }
    )


@router.post("/{booking_id}/questions")
def answer_questions(booking_id: str, body: AnswerQuestionsRequest) -> JSONResponse:
    """Submit guest data; when still incomplete, report what remains."""
    token = bind_booking_id(booking_id)
    try:
        outcome = submit_answers(booking_id, body.to_guest_data(), client=_get_holibob_client())
    except Exception as e:
        return _failure(e, booking_id, fallback="Failed to submit answers")
    finally:
        unbind_booking_id(token)

    if isinstance(outcome, Complete):
        return ok({"can_commit": True, "booking": _booking_view(outcome.booking)})
    return ok(
        {
            "can_commit": False,
            "booking": _booking_view(outcome.booking),
            "remaining_questions": outcome.remaining_questions,
            "remaining_count": outcome.remaining_count,
            "message": outcome.message,
        }
    )


@router.get("/{booking_id}/payment-intent")
def payment_intent(booking_id: str) -> JSONResponse:
    """Stripe intent for a booking ready to pay; ``skipPayment`` for on-account bookings."""
    try:
        start = create_payment_intent(
            booking_id,
            client=_get_holibob_client(),
            stripe_client=_get_stripe_client(),
        )
    except BookingNotReadyError:
        return error(NOT_READY_MESSAGE, 400)
    except Exception as e:
        not_found = isinstance(e, BookingNotFoundError) or (
            isinstance(e, SupplierApiError) and e.is_not_found
        )
        if not not_found:
            track_funnel_event(
                FunnelStep.PAYMENT_STARTED,
                booking_id=booking_id,
                error_code="PAYMENT_ERROR",
                error_message=str(e),
            )
        return _failure(e, booking_id, fallback="Failed to get payment intent")

    if start.skip_payment:
        return error("Payment not required for this booking", 400, skip_payment=True)

    track_funnel_event(FunnelStep.PAYMENT_STARTED, booking_id=booking_id)

    intent = start.intent
    total = start.booking.total_price
    return ok(
        {
            "client_secret": intent.client_secret,
            "api_key": intent.publishable_key,
            "amount": intent.amount,
            "payment_intent_id": intent.payment_intent_id,
            "booking": {
                "id": start.booking.id,
                "total_price": total.gross if total else None,
                "currency": total.currency if total else None,
            },
        }
    )


@router.post("/{booking_id}/cancel")
def cancel_booking(booking_id: str, body: CancelRequest) -> JSONResponse:
    try:
        booking = _get_holibob_client().cancel_booking(booking_id, body.reason)
    except Exception as e:
        return _failure(e, booking_id, fallback="Failed to cancel booking")

    _persist(
        "booking_status_update_failed",
        booking_id,
        lambda cur: bookings_repository.update_booking_status(
            cur, booking_id=booking_id, status="CANCELLED"
        ),
    )
    return ok(_booking_view(booking))
