"""Checkout driver: calls the collaborators and feeds results into the state machine.

One ``CheckoutFlow`` drives one booking. Calls are sequential; every
suspending action is guarded so a second click while it runs raises
``ActionInFlightError`` instead of sending a duplicate request.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Callable

from experiencess.domain import checkout
from experiencess.domain.answers import GuestData, Incomplete, submit_answers
from experiencess.domain.checkout import CheckoutAction, CheckoutState, CheckoutStep
from experiencess.domain.commit import (
    DEFAULT_MAX_WAIT_SECONDS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    CommitResult,
    commit,
)
from experiencess.domain.guest_form import GuestForm, ValidationResult, build_guest_data, validate
from experiencess.domain.payments import PaymentIntentInfo, create_payment_intent, interpret_payment_status
from experiencess.domain.questions import DisplayedQuestions, QuestionSummary, displayed_questions
from experiencess.errors import BookingCoreError, BookingNotFoundError

if TYPE_CHECKING:
    from experiencess.holibob.client import HolibobClient
    from experiencess.stripe.client import StripeClient

logger = logging.getLogger(__name__)


def confirm_wait_settings() -> tuple[float, float]:
    """(max_wait_seconds, poll_interval_seconds) from env."""
    max_wait = float(os.environ.get("BOOKING_CONFIRM_MAX_WAIT_SECONDS", DEFAULT_MAX_WAIT_SECONDS))
    interval = float(
        os.environ.get("BOOKING_CONFIRM_POLL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL_SECONDS)
    )
    return max_wait, interval


class CheckoutFlow:
    """Drive a checkout from first load to the confirmation redirect.

    Usage:
        flow = CheckoutFlow("booking-123", client=HolibobClient())
        flow.load()
        state, validation = flow.submit_form(form)
        flow.proceed_to_payment()
        flow.payment_completed("succeeded")
        flow.state.confirmation_url
    """

    def __init__(
        self,
        booking_id: str,
        *,
        client: HolibobClient,
        stripe_client: StripeClient | None = None,
        state: CheckoutState | None = None,
        commit_fn: Callable[..., CommitResult] = commit,
        max_wait_seconds: float | None = None,
        poll_interval_seconds: float | None = None,
    ) -> None:
        self.booking_id = booking_id
        self.state = state or CheckoutState(booking_id=booking_id)
        self.summary: QuestionSummary | None = None
        self.payment_intent: PaymentIntentInfo | None = None
        self._client = client
        self._stripe_client = stripe_client
        self._commit_fn = commit_fn

        env_wait, env_interval = confirm_wait_settings()
        self._max_wait_seconds = env_wait if max_wait_seconds is None else max_wait_seconds
        self._poll_interval_seconds = (
            env_interval if poll_interval_seconds is None else poll_interval_seconds
        )

    def _fail(self, action: CheckoutAction, exc: Exception) -> None:
        logger.warning(
            "checkout_action_failed",
            extra={
                "booking_id": self.booking_id,
                "action": action.value,
                "error_type": type(exc).__name__,
            },
        )
        self.state = checkout.on_error(self.state, str(exc) or "Something went wrong")

    @property
    def displayed(self) -> DisplayedQuestions | None:
        """Questions the form shows, from the latest fetched tree."""
        return displayed_questions(self.summary) if self.summary else None

    def load(self) -> CheckoutState:
        checkout.require_step(self.state, CheckoutStep.LOADING)
        self.state = checkout.begin(self.state, CheckoutAction.LOAD)
        try:
            booking = self._client.get_questions(self.booking_id)
            summary = QuestionSummary.from_booking(booking)
        except BookingNotFoundError:
            self.state = checkout.on_booking_loaded(self.state, None)
        except BookingCoreError as e:
            logger.warning(
                "checkout_load_failed",
                extra={"booking_id": self.booking_id, "error_type": type(e).__name__},
            )
            self.state = checkout.on_load_failed(self.state, str(e))
        except Exception as e:
            logger.exception(
                "checkout_load_failed",
                extra={"booking_id": self.booking_id, "error_type": type(e).__name__},
            )
            self.state = checkout.on_load_failed(self.state, str(e) or "Something went wrong")
        else:
            self.summary = summary
            self.state = checkout.on_booking_loaded(self.state, booking)
        finally:
            self.state = checkout.end(self.state, CheckoutAction.LOAD)
        return self.state

    def submit_questions(self, guest_data: GuestData) -> CheckoutState:
        """Send answers; Incomplete keeps the form up with the remaining-questions banner."""
        checkout.require_step(self.state, CheckoutStep.QUESTIONS)
        self.state = checkout.begin(self.state, CheckoutAction.SUBMIT_ANSWERS)
        try:
            outcome = submit_answers(self.booking_id, guest_data, client=self._client)
        except Exception as e:
            self._fail(CheckoutAction.SUBMIT_ANSWERS, e)
        else:
            if isinstance(outcome, Incomplete):
                self.summary = outcome.summary
            else:
                self.summary = QuestionSummary.from_booking(outcome.booking)
            self.state = checkout.on_answer_result(self.state, outcome)
        finally:
            self.state = checkout.end(self.state, CheckoutAction.SUBMIT_ANSWERS)
        return self.state

    def submit_form(self, form: GuestForm) -> tuple[CheckoutState, ValidationResult]:
        """Validate the form and submit it only when valid."""
        checkout.require_step(self.state, CheckoutStep.QUESTIONS)
        displayed = self.displayed
        result = validate(form, displayed.all if displayed else [])
        if not result.is_valid:
            return self.state, result
        self.state = checkout.dismiss_error(self.state)
        guest_data = build_guest_data(form, self.summary.booking)
        return self.submit_questions(guest_data), result

    def edit_answers(self) -> CheckoutState:
        self.state = checkout.on_edit_answers(self.state)
        return self.state

    def proceed_to_payment(self) -> CheckoutState:
        """Open payment, or commit directly when the booking needs no card payment."""
        checkout.require_step(self.state, CheckoutStep.REVIEW)
        self.state = checkout.begin(self.state, CheckoutAction.PAYMENT_INTENT)
        skip = False
        try:
            start = create_payment_intent(
                self.booking_id, client=self._client, stripe_client=self._stripe_client
            )
        except Exception as e:
            self._fail(CheckoutAction.PAYMENT_INTENT, e)
        else:
            if start.skip_payment:
                self.state = checkout.on_skip_payment(self.state)
                skip = True
            else:
                self.payment_intent = start.intent
                self.state = checkout.on_proceed_to_payment(self.state)
        finally:
            self.state = checkout.end(self.state, CheckoutAction.PAYMENT_INTENT)

        if skip:
            return self.commit()
        return self.state

    def payment_completed(self, status: str | None, error: str | None = None) -> CheckoutState:
        """Feed the payment form's confirmation result; commits on success."""
        checkout.require_step(self.state, CheckoutStep.PAYMENT)
        self.state = checkout.begin(self.state, CheckoutAction.PAY)
        try:
            outcome = interpret_payment_status(status, error)
            if outcome.report_error:
                logger.warning(
                    "payment_not_completed",
                    extra={"booking_id": self.booking_id, "payment_status": status},
                )
            self.state = checkout.on_payment_result(self.state, outcome)
        finally:
            self.state = checkout.end(self.state, CheckoutAction.PAY)

        if self.state.step is CheckoutStep.COMMITTING:
            return self.commit()
        return self.state

    def commit(self) -> CheckoutState:
        """Commit and wait for confirmation. Safe to call again after an error banner."""
        checkout.require_step(self.state, CheckoutStep.COMMITTING)
        self.state = checkout.begin(self.state, CheckoutAction.COMMIT)
        try:
            result = self._commit_fn(
                self.booking_id,
                True,
                self._max_wait_seconds,
                client=self._client,
                poll_interval_seconds=self._poll_interval_seconds,
            )
        except Exception as e:
            self._fail(CheckoutAction.COMMIT, e)
        else:
            self.state = checkout.on_commit_result(self.state, result)
        finally:
            self.state = checkout.end(self.state, CheckoutAction.COMMIT)
        return self.state
