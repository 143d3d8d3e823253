"""Shared test helpers: model builders and a fake supplier client.

These are NOT fixtures - they are regular functions and classes, imported by
conftest.py and individual test files.
"""

from __future__ import annotations

from typing import Any

from experiencess.domain.models import (
    AvailabilityDetail,
    AvailabilityList,
    Booking,
    BookingAvailability,
    BookingState,
    OptionList,
    Person,
    Price,
    PricingCategory,
    Question,
    QuestionType,
)
from experiencess.errors import BookingNotFoundError


def make_question(
    qid: str,
    label: str,
    *,
    type: QuestionType = QuestionType.TEXT,
    required: bool = True,
    answer: str | None = None,
) -> Question:
    return Question(id=qid, label=label, type=type, is_required=required, answer_value=answer)


def make_person(pid: str, *questions: Question, complete: bool = False, category: str = "Adult") -> Person:
    return Person(
        id=pid,
        pricing_category_label=category,
        is_questions_complete=complete,
        questions=list(questions),
    )


def make_booking(
    booking_id: str = "booking-123",
    *,
    questions: list[Question] | None = None,
    availabilities: list[BookingAvailability] | None = None,
    can_commit: bool = False,
    state: BookingState | None = BookingState.OPEN,
    voucher_url: str | None = None,
    gross: int | None = 5000,
) -> Booking:
    return Booking(
        id=booking_id,
        code="HBK-1",
        state=state,
        can_commit=can_commit,
        total_price=Price(gross=gross, currency="GBP") if gross is not None else None,
        voucher_url=voucher_url,
        questions=questions or [],
        availabilities=availabilities or [],
    )


def make_availability(
    aid: str = "avail-1",
    *,
    persons: list[Person] | None = None,
    questions: list[Question] | None = None,
) -> BookingAvailability:
    return BookingAvailability(
        id=aid,
        date="2026-11-01",
        product_name="Harbour Cruise",
        questions=questions or [],
        persons=persons or [],
    )


def make_detail(
    aid: str = "avail-1",
    *,
    complete: bool = True,
    valid: bool = True,
    categories: list[PricingCategory] | None = None,
) -> AvailabilityDetail:
    return AvailabilityDetail(
        id=aid,
        date="2026-11-01",
        option_list=OptionList(is_complete=complete),
        is_valid=valid,
        total_price=Price(gross=9000, currency="GBP"),
        pricing_categories=categories or [],
    )


class FakeHolibobClient:
    """In-memory stand-in for HolibobClient.

    Responses are configured per test; every call is recorded in ``calls``.
    Once answers are submitted, get_questions returns ``refetched`` (or
    ``after_answer``) instead of ``booking``.
    ``state_sequence`` feeds get_booking_state (the last entry repeats).
    """

    def __init__(self, booking: Booking | None = None) -> None:
        self.booking = booking
        self.after_answer: Booking | None = None
        self.refetched: Booking | None = None
        self.commit_response: Booking | None = None
        self.state_sequence: list[Booking] = []
        self.payment_intent: dict[str, Any] | None = None
        self.payment_intent_error: Exception | None = None
        self.detail: AvailabilityDetail | None = None
        self.options_detail: AvailabilityDetail | None = None
        self.calls: list[tuple[str, tuple]] = []
        self.answer_payloads: list[dict[str, Any]] = []
        self._answered = False

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def discover_availability(self, product_id, date_from, date_to):
        self._record("discover_availability", product_id, date_from, date_to)
        return AvailabilityList(session_id="sess-1")

    def get_availability(self, availability_id):
        self._record("get_availability", availability_id)
        return self.detail

    def set_options(self, availability_id, answers):
        self._record("set_options", availability_id, answers)
        return self.options_detail or self.detail

    def set_pricing(self, availability_id, category_counts):
        self._record("set_pricing", availability_id, category_counts)
        return self.detail

    def create_booking(self, **input_):
        self._record("create_booking")
        return self.booking

    def add_availability(self, booking_id, availability_id):
        self._record("add_availability", booking_id, availability_id)
        return self.booking

    def get_questions(self, booking_id):
        self._record("get_questions", booking_id)
        current = self.booking
        if self._answered:
            current = self.refetched or self.after_answer or self.booking
        if current is None:
            raise BookingNotFoundError(booking_id)
        return current

    def answer_questions(self, booking_id, payload):
        self._record("answer_questions", booking_id)
        self.answer_payloads.append(payload)
        self._answered = True
        return self.after_answer or self.booking

    def commit(self, booking_id):
        self._record("commit", booking_id)
        return self.commit_response

    def get_booking(self, booking_id):
        self._record("get_booking", booking_id)
        return self.booking

    def get_booking_state(self, booking_id):
        self._record("get_booking_state", booking_id)
        if len(self.state_sequence) > 1:
            return self.state_sequence.pop(0)
        return self.state_sequence[0]

    def cancel_booking(self, booking_id, reason=None):
        self._record("cancel_booking", booking_id, reason)
        return make_booking(booking_id, state=BookingState.CANCELLED)

    def get_stripe_payment_intent(self, booking_id):
        self._record("get_stripe_payment_intent", booking_id)
        if self.payment_intent_error is not None:
            raise self.payment_intent_error
        return self.payment_intent


class FakeClock:
    """Monotonic clock that only advances when ``sleep`` is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
