"""Tests for the checkout state machine (pure transitions)."""

import pytest

from helpers import make_booking, make_question

from experiencess.domain import checkout
from experiencess.domain.answers import Complete, outcome_from
from experiencess.domain.checkout import (
    RESUBMIT_LABEL,
    SUBMIT_LABEL,
    CheckoutAction,
    CheckoutState,
    CheckoutStep,
    confirmation_url,
)
from experiencess.domain.commit import CommitOutcome, CommitResult
from experiencess.domain.models import BookingState
from experiencess.domain.payments import interpret_payment_status
from experiencess.errors import ActionInFlightError, InvalidTransitionError


def _state(step: CheckoutStep, **changes) -> CheckoutState:
    return CheckoutState(booking_id="booking-123", step=step, **changes)


def _commit_result(outcome: CommitOutcome) -> CommitResult:
    return CommitResult(
        booking=make_booking(),
        is_confirmed=outcome is CommitOutcome.CONFIRMED,
        voucher_url=None,
        outcome=outcome,
    )


class TestLoad:
    def test_missing_booking(self):
        state = checkout.on_booking_loaded(_state(CheckoutStep.LOADING), None)
        assert state.step is CheckoutStep.NOT_FOUND
        assert state.is_terminal

    def test_confirmed_booking_redirects(self):
        booking = make_booking(state=BookingState.CONFIRMED)
        state = checkout.on_booking_loaded(_state(CheckoutStep.LOADING), booking)
        assert state.step is CheckoutStep.REDIRECT
        assert state.confirmation_url == "/booking/confirmation/booking-123"

    def test_cancelled_booking(self):
        booking = make_booking(state=BookingState.CANCELLED)
        state = checkout.on_booking_loaded(_state(CheckoutStep.LOADING), booking)
        assert state.step is CheckoutStep.CANCELLED

    def test_open_booking_shows_questions(self):
        booking = make_booking(can_commit=True)
        state = checkout.on_booking_loaded(_state(CheckoutStep.LOADING), booking)
        assert state.step is CheckoutStep.QUESTIONS
        assert state.can_commit is True

    def test_load_failure(self):
        state = checkout.on_load_failed(_state(CheckoutStep.LOADING), "Request failed")
        assert state.step is CheckoutStep.NOT_FOUND
        assert state.error == "Request failed"


class TestAnswers:
    def test_complete_moves_to_review(self):
        state = checkout.on_answer_result(
            _state(CheckoutStep.QUESTIONS), Complete(make_booking(can_commit=True))
        )
        assert state.step is CheckoutStep.REVIEW
        assert state.can_commit is True
        assert state.submit_attempts == 1

    def test_incomplete_stays_with_banner(self):
        outcome = outcome_from(
            make_booking(questions=[make_question("b1", "Special requirements")])
        )

        state = checkout.on_answer_result(_state(CheckoutStep.QUESTIONS), outcome)

        assert state.step is CheckoutStep.QUESTIONS
        assert state.is_resubmission is True
        assert state.submit_label == RESUBMIT_LABEL
        assert state.error.startswith("There is 1 additional question")

    def test_banner_shown_on_every_incomplete_submit(self):
        outcome = outcome_from(
            make_booking(
                questions=[make_question("b1", "Pickup hotel"), make_question("b2", "Flight number")]
            )
        )
        state = _state(CheckoutStep.QUESTIONS)
        for _ in range(3):
            state = checkout.on_answer_result(state, outcome)

        assert state.submit_attempts == 3
        assert state.error.startswith("There are 2 additional questions")

    def test_first_submit_label(self):
        assert _state(CheckoutStep.QUESTIONS).submit_label == SUBMIT_LABEL

    def test_answers_not_accepted_in_review(self):
        with pytest.raises(InvalidTransitionError):
            checkout.on_answer_result(_state(CheckoutStep.REVIEW), Complete(make_booking()))


class TestReviewAndPayment:
    def test_proceed_requires_can_commit(self):
        with pytest.raises(InvalidTransitionError):
            checkout.on_proceed_to_payment(_state(CheckoutStep.REVIEW, can_commit=False))

    def test_proceed_to_payment(self):
        state = checkout.on_proceed_to_payment(_state(CheckoutStep.REVIEW, can_commit=True))
        assert state.step is CheckoutStep.PAYMENT

    def test_skip_payment_goes_to_committing(self):
        state = checkout.on_skip_payment(_state(CheckoutStep.REVIEW, can_commit=True))
        assert state.step is CheckoutStep.COMMITTING

    def test_edit_answers_keeps_collected_answers(self):
        state = _state(CheckoutStep.REVIEW, dynamic_answers={"q1": "Vegan"})
        edited = checkout.on_edit_answers(state)
        assert edited.step is CheckoutStep.QUESTIONS
        assert edited.dynamic_answers == {"q1": "Vegan"}

    def test_payment_success_moves_to_committing(self):
        state = checkout.on_payment_result(
            _state(CheckoutStep.PAYMENT), interpret_payment_status("requires_capture")
        )
        assert state.step is CheckoutStep.COMMITTING

    def test_declined_payment_stays_for_retry(self):
        state = checkout.on_payment_result(
            _state(CheckoutStep.PAYMENT), interpret_payment_status("requires_payment_method")
        )
        assert state.step is CheckoutStep.PAYMENT
        assert "declined" in state.payment_message

    def test_cannot_commit_from_review_without_payment(self):
        with pytest.raises(InvalidTransitionError):
            checkout.on_commit_result(
                _state(CheckoutStep.REVIEW), _commit_result(CommitOutcome.CONFIRMED)
            )


class TestCommitResult:
    def test_confirmed(self):
        state = checkout.on_commit_result(
            _state(CheckoutStep.COMMITTING), _commit_result(CommitOutcome.CONFIRMED)
        )
        assert state.step is CheckoutStep.DONE
        assert state.confirmation_url == "/booking/confirmation/booking-123"

    def test_pending_redirects_with_flag(self):
        state = checkout.on_commit_result(
            _state(CheckoutStep.COMMITTING), _commit_result(CommitOutcome.PENDING)
        )
        assert state.step is CheckoutStep.DONE
        assert state.confirmation_url == "/booking/confirmation/booking-123?pending=true"

    def test_rejected_is_not_pending(self):
        state = checkout.on_commit_result(
            _state(CheckoutStep.COMMITTING), _commit_result(CommitOutcome.REJECTED)
        )
        assert state.step is CheckoutStep.REJECTED
        assert state.confirmation_url is None
        assert "pending" not in state.error.lower()
        assert "processing" not in state.error.lower()


class TestErrorsAndGuards:
    def test_error_keeps_step_and_answers(self):
        state = _state(CheckoutStep.QUESTIONS, dynamic_answers={"q1": "x"})
        failed = checkout.on_error(state, "Request failed")
        assert failed.step is CheckoutStep.QUESTIONS
        assert failed.error == "Request failed"
        assert failed.dynamic_answers == {"q1": "x"}
        assert checkout.dismiss_error(failed).error is None

    def test_error_after_terminal_rejected(self):
        with pytest.raises(InvalidTransitionError):
            checkout.on_error(_state(CheckoutStep.DONE), "late")

    def test_in_flight_guard(self):
        state = checkout.begin(_state(CheckoutStep.QUESTIONS), CheckoutAction.SUBMIT_ANSWERS)
        assert state.is_in_flight(CheckoutAction.SUBMIT_ANSWERS)

        with pytest.raises(ActionInFlightError):
            checkout.begin(state, CheckoutAction.SUBMIT_ANSWERS)

        done = checkout.end(state, CheckoutAction.SUBMIT_ANSWERS)
        assert not done.is_in_flight(CheckoutAction.SUBMIT_ANSWERS)

    def test_different_actions_may_overlap(self):
        state = checkout.begin(_state(CheckoutStep.PAYMENT), CheckoutAction.PAY)
        state = checkout.begin(state, CheckoutAction.COMMIT)
        assert state.in_flight == ["pay", "commit"]


class TestFormState:
    def test_set_answer_does_not_mutate(self):
        state = _state(CheckoutStep.QUESTIONS)
        updated = checkout.set_answer(state, "q1", "Vegan")
        assert state.dynamic_answers == {}
        assert updated.dynamic_answers == {"q1": "Vegan"}

    def test_toggle_person(self):
        state = checkout.toggle_person(_state(CheckoutStep.QUESTIONS), "p2")
        assert state.expanded_persons == {"p2": True}
        assert checkout.toggle_person(state, "p2").expanded_persons == {"p2": False}

    def test_dict_round_trip(self):
        state = _state(
            CheckoutStep.PAYMENT,
            can_commit=True,
            submit_attempts=2,
            dynamic_answers={"q1": "Vegan"},
            expanded_persons={"p2": True},
        )

        data = state.to_dict()

        assert data["step"] == "payment"
        assert CheckoutState.from_dict(data) == state


class TestConfirmationUrl:
    def test_pending_flag(self):
        assert confirmation_url("b-1", pending=True) == "/booking/confirmation/b-1?pending=true"
