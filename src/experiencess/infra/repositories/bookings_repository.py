"""Bookings repository - local record of supplier bookings.

The supplier is the system of record; this table keeps what the
marketplace needs for reporting and urgency messaging. Uses raw SQL with
psycopg2 (no ORM). No guest PII is stored.
"""

from typing import Any

from psycopg2.extensions import cursor as PgCursor

from experiencess.infra.db import fetchone

VALID_STATUSES = {
    "OPEN",
    "PENDING",
    "CONFIRMED",
    "REJECTED",
    "CANCELLED",
    "PAYMENT_RECEIVED",
    "PAYMENT_FAILED",
}


def record_booking(
    cur: PgCursor,
    *,
    booking_id: str,
    status: str = "OPEN",
    product_id: str | None = None,
    product_name: str | None = None,
    booking_code: str | None = None,
    total_amount: int | None = None,
    currency: str | None = None,
    guest_count: int | None = None,
    site_id: str | None = None,
) -> bool:
    """Insert a booking record. Returns False when it already exists."""
    if status not in VALID_STATUSES:
        raise ValueError(f"Invalid booking status: {status}")

    cur.execute(
        """
        INSERT INTO bookings (
            holibob_booking_id, site_id, product_id, product_name,
            booking_code, status, total_amount, currency, guest_count
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
        ON CONFLICT (holibob_booking_id) DO NOTHING
        """,
        (
            booking_id,
            site_id,
            product_id,
            product_name,
            booking_code,
            status,
            total_amount,
            currency,
            guest_count,
        ),
    )
    return cur.rowcount > 0


def update_booking_status(
    cur: PgCursor,
    *,
    booking_id: str,
    status: str,
    voucher_url: str | None = None,
    payment_intent_id: str | None = None,
) -> bool:
    """Update status (and voucher / payment reference when given).

    Returns:
        True if a row was updated, False if the booking is unknown.
    """
    if status not in VALID_STATUSES:
        raise ValueError(f"Invalid booking status: {status}")

    cur.execute(
        """
        UPDATE bookings
        SET status = %s,
            voucher_url = COALESCE(%s, voucher_url),
            payment_intent_id = COALESCE(%s, payment_intent_id),
            updated_at = now()
        WHERE holibob_booking_id = %s
        """,
        (status, voucher_url, payment_intent_id, booking_id),
    )
    return cur.rowcount > 0


def get_booking_record(cur: PgCursor, booking_id: str) -> dict[str, Any] | None:
    row = fetchone(
        cur,
        """
        SELECT holibob_booking_id, product_id, status, total_amount, currency,
               voucher_url, payment_intent_id
        FROM bookings
        WHERE holibob_booking_id = %s
        """,
        (booking_id,),
    )
    if row is None:
        return None
    return {
        "booking_id": row[0],
        "product_id": row[1],
        "status": row[2],
        "total_amount": row[3],
        "currency": row[4],
        "voucher_url": row[5],
        "payment_intent_id": row[6],
    }


def count_recent_bookings(cur: PgCursor, *, product_id: str, days: int = 7) -> int:
    """Confirmed bookings of a product in the last ``days`` days."""
    row = fetchone(
        cur,
        """
        SELECT count(*)
        FROM bookings
        WHERE product_id = %s
          AND status = 'CONFIRMED'
          AND created_at >= now() - make_interval(days => %s)
        """,
        (product_id, days),
    )
    return int(row[0]) if row else 0
