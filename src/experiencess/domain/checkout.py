"""Checkout state machine.

The whole checkout session is one serializable ``CheckoutState`` value.
Transition functions are pure: they take a state plus an event result and
return a new state, or raise ``InvalidTransitionError`` when the event is
not allowed in the current step.

    LOADING -> NOT_FOUND | CANCELLED | REDIRECT | QUESTIONS
    QUESTIONS -> QUESTIONS (incomplete) | REVIEW
    REVIEW -> QUESTIONS (edit) | PAYMENT | COMMITTING (no payment needed)
    PAYMENT -> PAYMENT (declined, retry) | COMMITTING
    COMMITTING -> DONE (confirmed or pending) | REJECTED
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from experiencess.domain.answers import Complete, Outcome
from experiencess.domain.commit import CommitOutcome, CommitResult
from experiencess.domain.models import Booking, BookingState
from experiencess.errors import ActionInFlightError, InvalidTransitionError

if TYPE_CHECKING:
    from experiencess.domain.payments import PaymentOutcome


class CheckoutStep(str, Enum):
    LOADING = "loading"
    NOT_FOUND = "not_found"
    CANCELLED = "cancelled"
    REDIRECT = "redirect"
    QUESTIONS = "questions"
    REVIEW = "review"
    PAYMENT = "payment"
    COMMITTING = "committing"
    DONE = "done"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset(
    {
        CheckoutStep.NOT_FOUND,
        CheckoutStep.CANCELLED,
        CheckoutStep.REDIRECT,
        CheckoutStep.DONE,
        CheckoutStep.REJECTED,
    }
)


class CheckoutAction(str, Enum):
    """Actions that suspend on a network call; each may run once at a time."""

    LOAD = "load"
    SUBMIT_ANSWERS = "submit_answers"
    PAYMENT_INTENT = "payment_intent"
    PAY = "pay"
    COMMIT = "commit"


_ALLOWED: frozenset[tuple[CheckoutStep, CheckoutStep]] = frozenset(
    {
        (CheckoutStep.LOADING, CheckoutStep.NOT_FOUND),
        (CheckoutStep.LOADING, CheckoutStep.CANCELLED),
        (CheckoutStep.LOADING, CheckoutStep.REDIRECT),
        (CheckoutStep.LOADING, CheckoutStep.QUESTIONS),
        (CheckoutStep.QUESTIONS, CheckoutStep.QUESTIONS),
        (CheckoutStep.QUESTIONS, CheckoutStep.REVIEW),
        (CheckoutStep.REVIEW, CheckoutStep.QUESTIONS),
        (CheckoutStep.REVIEW, CheckoutStep.PAYMENT),
        (CheckoutStep.REVIEW, CheckoutStep.COMMITTING),
        (CheckoutStep.PAYMENT, CheckoutStep.PAYMENT),
        (CheckoutStep.PAYMENT, CheckoutStep.COMMITTING),
        (CheckoutStep.COMMITTING, CheckoutStep.DONE),
        (CheckoutStep.COMMITTING, CheckoutStep.REJECTED),
    }
)

SUBMIT_LABEL = "Proceed to Payment"
RESUBMIT_LABEL = "Submit Answers"
REJECTED_MESSAGE = (
    "The experience provider could not confirm this booking. "
    "Please choose another date or contact support."
)


def confirmation_url(booking_id: str, *, pending: bool = False) -> str:
    url = f"/booking/confirmation/{booking_id}"
    return f"{url}?pending=true" if pending else url


@dataclass
class CheckoutState:
    """Serializable state of one checkout session."""

    booking_id: str
    step: CheckoutStep = CheckoutStep.LOADING
    can_commit: bool = False
    submit_attempts: int = 0
    is_resubmission: bool = False
    error: str | None = None
    payment_message: str | None = None
    in_flight: list[str] = field(default_factory=list)
    confirmation_url: str | None = None
    dynamic_answers: dict[str, str] = field(default_factory=dict)
    expanded_persons: dict[str, bool] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.step.is_terminal

    @property
    def submit_label(self) -> str:
        return RESUBMIT_LABEL if self.is_resubmission else SUBMIT_LABEL

    def is_in_flight(self, action: CheckoutAction) -> bool:
        return action.value in self.in_flight

    def to_dict(self) -> dict[str, Any]:
        data = dataclasses.asdict(self)
        data["step"] = self.step.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CheckoutState:
        values = {f.name: data[f.name] for f in dataclasses.fields(cls) if f.name in data}
        values["step"] = CheckoutStep(values.get("step", CheckoutStep.LOADING.value))
        return cls(**values)


def _move(state: CheckoutState, to: CheckoutStep, **changes: Any) -> CheckoutState:
    if (state.step, to) not in _ALLOWED:
        raise InvalidTransitionError(f"Cannot move from {state.step.value} to {to.value}")
    return dataclasses.replace(state, step=to, **changes)


def require_step(state: CheckoutState, *steps: CheckoutStep) -> None:
    if state.step not in steps:
        raise InvalidTransitionError(
            f"Event not allowed in step {state.step.value}"
        )


# ----------------------------------------------------------------------
# In-flight guards
# ----------------------------------------------------------------------


def begin(state: CheckoutState, action: CheckoutAction) -> CheckoutState:
    """Mark ``action`` in flight.

    Raises:
        ActionInFlightError: If the same action has not finished yet.
    """
    if state.is_in_flight(action):
        raise ActionInFlightError(action.value)
    return dataclasses.replace(state, in_flight=[*state.in_flight, action.value])


def end(state: CheckoutState, action: CheckoutAction) -> CheckoutState:
    return dataclasses.replace(state, in_flight=[a for a in state.in_flight if a != action.value])


# ----------------------------------------------------------------------
# Transitions
# ----------------------------------------------------------------------


def on_booking_loaded(state: CheckoutState, booking: Booking | None) -> CheckoutState:
    """Initial fetch finished. None means the booking does not exist."""
    require_step(state, CheckoutStep.LOADING)
    if booking is None:
        return _move(state, CheckoutStep.NOT_FOUND)
    if booking.state in (BookingState.CONFIRMED, BookingState.COMPLETED):
        return _move(state, CheckoutStep.REDIRECT, confirmation_url=confirmation_url(booking.id))
    if booking.state is BookingState.CANCELLED:
        return _move(state, CheckoutStep.CANCELLED)
    return _move(state, CheckoutStep.QUESTIONS, can_commit=booking.can_commit)


def on_load_failed(state: CheckoutState, message: str | None = None) -> CheckoutState:
    require_step(state, CheckoutStep.LOADING)
    return _move(state, CheckoutStep.NOT_FOUND, error=message)


def on_answer_result(state: CheckoutState, outcome: Outcome) -> CheckoutState:
    """Answers were submitted (and re-checked when canCommit was false)."""
    require_step(state, CheckoutStep.QUESTIONS)
    attempts = state.submit_attempts + 1
    if isinstance(outcome, Complete):
        return _move(
            state,
            CheckoutStep.REVIEW,
            can_commit=True,
            submit_attempts=attempts,
            error=None,
        )
    return _move(
        state,
        CheckoutStep.QUESTIONS,
        can_commit=False,
        submit_attempts=attempts,
        is_resubmission=True,
        error=outcome.message,
    )


def on_proceed_to_payment(state: CheckoutState) -> CheckoutState:
    require_step(state, CheckoutStep.REVIEW)
    if not state.can_commit:
        raise InvalidTransitionError("Booking has unanswered required questions")
    return _move(state, CheckoutStep.PAYMENT, error=None, payment_message=None)


def on_skip_payment(state: CheckoutState) -> CheckoutState:
    """Booking is paid on account; go straight to commit."""
    require_step(state, CheckoutStep.REVIEW)
    if not state.can_commit:
        raise InvalidTransitionError("Booking has unanswered required questions")
    return _move(state, CheckoutStep.COMMITTING, error=None)


def on_edit_answers(state: CheckoutState) -> CheckoutState:
    """Back to the question form; answers already collected are kept."""
    require_step(state, CheckoutStep.REVIEW)
    return _move(state, CheckoutStep.QUESTIONS)


def on_payment_result(state: CheckoutState, outcome: PaymentOutcome) -> CheckoutState:
    require_step(state, CheckoutStep.PAYMENT)
    if outcome.success:
        return _move(state, CheckoutStep.COMMITTING, payment_message=None, error=None)
    return _move(state, CheckoutStep.PAYMENT, payment_message=outcome.message)


def on_commit_result(state: CheckoutState, result: CommitResult) -> CheckoutState:
    require_step(state, CheckoutStep.COMMITTING)
    if result.outcome is CommitOutcome.REJECTED:
        return _move(state, CheckoutStep.REJECTED, error=REJECTED_MESSAGE, confirmation_url=None)
    pending = result.outcome is CommitOutcome.PENDING
    return _move(
        state,
        CheckoutStep.DONE,
        error=None,
        confirmation_url=confirmation_url(state.booking_id, pending=pending),
    )


def on_error(state: CheckoutState, message: str) -> CheckoutState:
    """A call raised. Show the message as a banner; the step and form data stay."""
    if state.is_terminal:
        raise InvalidTransitionError(f"Checkout already finished ({state.step.value})")
    return dataclasses.replace(state, error=message)


def dismiss_error(state: CheckoutState) -> CheckoutState:
    return dataclasses.replace(state, error=None)


def set_answer(state: CheckoutState, question_id: str, value: str) -> CheckoutState:
    return dataclasses.replace(state, dynamic_answers={**state.dynamic_answers, question_id: value})


def toggle_person(state: CheckoutState, person_id: str) -> CheckoutState:
    expanded = not state.expanded_persons.get(person_id, False)
    return dataclasses.replace(state, expanded_persons={**state.expanded_persons, person_id: expanded})
