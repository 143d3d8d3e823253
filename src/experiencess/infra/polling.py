"""Timed-retry primitive: fixed interval, hard deadline, tri-state result.

Used by the commit poller to wait for supplier confirmation. A timeout is
a normal result (``PollStatus.TIMED_OUT``), never an exception; exceptions
raised by ``fetch`` propagate unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, Protocol, TypeVar

from experiencess.infra import time as clock_module

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PollStatus(str, Enum):
    DONE = "done"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class Verdict(str, Enum):
    """What ``classify`` says about one fetched value."""

    DONE = "done"
    FAILED = "failed"
    CONTINUE = "continue"


class CancelToken(Protocol):
    """Anything with ``is_set()``, e.g. ``threading.Event``."""

    def is_set(self) -> bool: ...


@dataclass
class PollResult(Generic[T]):
    status: PollStatus
    value: T | None
    attempts: int
    cancelled: bool = False


def poll_until(
    fetch: Callable[[], T],
    classify: Callable[[T], Verdict],
    *,
    interval_seconds: float,
    max_wait_seconds: float,
    clock: Callable[[], float] | None = None,
    sleep: Callable[[float], None] | None = None,
    cancel: CancelToken | None = None,
) -> PollResult[T]:
    """Call ``fetch`` every ``interval_seconds`` until it is terminal or the deadline passes.

    The first fetch happens immediately. The loop never sleeps past the
    deadline: when the next attempt would start after it, the last fetched
    value is returned with ``TIMED_OUT``.

    Args:
        fetch: Retrieves the current value (e.g. booking state).
        classify: Maps a value to DONE, FAILED or CONTINUE.
        interval_seconds: Fixed delay between attempts.
        max_wait_seconds: Hard deadline measured from the first call.
        clock: Monotonic clock (injectable for tests).
        sleep: Sleep function (injectable for tests).
        cancel: Optional token; when set, polling stops as TIMED_OUT with
            ``cancelled=True``.

    Returns:
        PollResult with the last fetched value.

    Raises:
        ValueError: If interval is not positive or max wait is negative.
    """
    if interval_seconds <= 0:
        raise ValueError("interval_seconds must be positive")
    if max_wait_seconds < 0:
        raise ValueError("max_wait_seconds must not be negative")

    now = clock or clock_module.monotonic
    wait = sleep or clock_module.sleep

    deadline = now() + max_wait_seconds
    attempts = 0
    value: T | None = None

    while True:
        if cancel is not None and cancel.is_set():
            return PollResult(PollStatus.TIMED_OUT, value, attempts, cancelled=True)

        value = fetch()
        attempts += 1

        verdict = classify(value)
        if verdict is Verdict.DONE:
            return PollResult(PollStatus.DONE, value, attempts)
        if verdict is Verdict.FAILED:
            return PollResult(PollStatus.FAILED, value, attempts)

        if now() + interval_seconds > deadline:
            logger.info(
                "poll_deadline_reached",
                extra={"attempts": attempts, "max_wait_seconds": max_wait_seconds},
            )
            return PollResult(PollStatus.TIMED_OUT, value, attempts)

        wait(interval_seconds)
