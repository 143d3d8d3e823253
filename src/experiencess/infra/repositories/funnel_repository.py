"""Booking funnel events - analytics sink.

Each step of the checkout records one row. Recording is best-effort:
failures are logged and never reach the booking flow.
"""

from __future__ import annotations

import logging
from enum import Enum

from psycopg2.extensions import cursor as PgCursor

from experiencess.infra.db import txn

logger = logging.getLogger(__name__)


class FunnelStep(str, Enum):
    AVAILABILITY_SELECTED = "AVAILABILITY_SELECTED"
    BOOKING_CREATED = "BOOKING_CREATED"
    PAYMENT_STARTED = "PAYMENT_STARTED"
    BOOKING_COMPLETED = "BOOKING_COMPLETED"


def insert_funnel_event(
    cur: PgCursor,
    *,
    step: FunnelStep,
    booking_id: str | None = None,
    product_id: str | None = None,
    site_id: str | None = None,
    error_code: str | None = None,
    error_message: str | None = None,
) -> None:
    cur.execute(
        """
        INSERT INTO booking_funnel_events (
            step, booking_id, product_id, site_id, error_code, error_message
        )
        VALUES (%s, %s, %s, %s, %s, %s)
        """,
        (step.value, booking_id, product_id, site_id, error_code, error_message),
    )


def track_funnel_event(
    step: FunnelStep,
    *,
    booking_id: str | None = None,
    product_id: str | None = None,
    site_id: str | None = None,
    error_code: str | None = None,
    error_message: str | None = None,
) -> bool:
    """Record a funnel event in its own transaction.

    Returns:
        True if recorded, False if recording failed (already logged).
    """
    try:
        with txn() as cur:
            insert_funnel_event(
                cur,
                step=step,
                booking_id=booking_id,
                product_id=product_id,
                site_id=site_id,
                error_code=error_code,
                error_message=error_message,
            )
    except Exception:
        logger.exception(
            "funnel_event_failed",
            extra={"step": step.value, "booking_id": booking_id},
        )
        return False
    return True
