"""Commit a booking and wait for the supplier's asynchronous confirmation.

After commit the booking is PENDING. The supplier later moves it to
CONFIRMED (voucher available) or REJECTED. A wait that runs out is not a
failure: the caller gets the still-PENDING booking and reports "processing".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable

from experiencess.domain.models import Booking, BookingState
from experiencess.infra.polling import CancelToken, PollStatus, Verdict, poll_until

if TYPE_CHECKING:
    from experiencess.holibob.client import HolibobClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_WAIT_SECONDS = 60
DEFAULT_POLL_INTERVAL_SECONDS = 2.0

_REJECTED_STATES = (BookingState.REJECTED, BookingState.CANCELLED)


class CommitOutcome(str, Enum):
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    PENDING = "pending"


@dataclass
class CommitResult:
    booking: Booking
    is_confirmed: bool
    voucher_url: str | None
    outcome: CommitOutcome

    @property
    def is_rejected(self) -> bool:
        return self.outcome is CommitOutcome.REJECTED


def classify_state(booking: Booking) -> Verdict:
    if booking.state in (BookingState.CONFIRMED, BookingState.COMPLETED):
        return Verdict.DONE
    if booking.state in _REJECTED_STATES:
        return Verdict.FAILED
    return Verdict.CONTINUE


def _result(booking: Booking, outcome: CommitOutcome) -> CommitResult:
    confirmed = outcome is CommitOutcome.CONFIRMED
    return CommitResult(
        booking=booking,
        is_confirmed=confirmed,
        voucher_url=booking.voucher_url if confirmed else None,
        outcome=outcome,
    )


def commit(
    booking_id: str,
    wait_for_confirmation: bool = True,
    max_wait_seconds: float = DEFAULT_MAX_WAIT_SECONDS,
    *,
    client: HolibobClient,
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
    clock: Callable[[], float] | None = None,
    sleep: Callable[[float], None] | None = None,
    cancel: CancelToken | None = None,
) -> CommitResult:
    """Commit the booking, then optionally poll until CONFIRMED, REJECTED or the deadline.

    REJECTED (and CANCELLED while waiting) is returned as
    ``CommitOutcome.REJECTED``; it is a supplier decision and is never retried.

    Raises:
        TransportError / SupplierApiError: From the commit call, unchanged.
    """
    logger.info(
        "booking_commit_requested",
        extra={"booking_id": booking_id, "wait_for_confirmation": wait_for_confirmation},
    )
    booking = client.commit(booking_id)

    verdict = classify_state(booking)
    if verdict is Verdict.DONE:
        logger.info("booking_confirmed", extra={"booking_id": booking_id, "attempts": 0})
        return _result(booking, CommitOutcome.CONFIRMED)
    if verdict is Verdict.FAILED:
        logger.warning("booking_rejected", extra={"booking_id": booking_id, "state": booking.state.value})
        return _result(booking, CommitOutcome.REJECTED)

    if not wait_for_confirmation:
        return _result(booking, CommitOutcome.PENDING)

    poll = poll_until(
        lambda: client.get_booking_state(booking_id),
        classify_state,
        interval_seconds=poll_interval_seconds,
        max_wait_seconds=max_wait_seconds,
        clock=clock,
        sleep=sleep,
        cancel=cancel,
    )
    latest = poll.value or booking

    if poll.status is PollStatus.DONE:
        logger.info("booking_confirmed", extra={"booking_id": booking_id, "attempts": poll.attempts})
        return _result(latest, CommitOutcome.CONFIRMED)
    if poll.status is PollStatus.FAILED:
        logger.warning(
            "booking_rejected",
            extra={"booking_id": booking_id, "state": latest.state.value if latest.state else None},
        )
        return _result(latest, CommitOutcome.REJECTED)

    logger.info(
        "booking_confirmation_timeout",
        extra={"booking_id": booking_id, "attempts": poll.attempts, "max_wait_seconds": max_wait_seconds},
    )
    return _result(latest, CommitOutcome.PENDING)
