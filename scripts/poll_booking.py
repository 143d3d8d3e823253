"""Wait for a committed booking to be confirmed by the supplier.

Usage:
    HOLIBOB_API_URL=... HOLIBOB_API_KEY=... HOLIBOB_PARTNER_ID=... \
        uv run python scripts/poll_booking.py <booking_id> [max_wait_seconds]

Polls the booking state every BOOKING_CONFIRM_POLL_INTERVAL_SECONDS (default 2)
until CONFIRMED, REJECTED or the wait runs out. Does not commit.
"""

from __future__ import annotations

import os
import sys


def main() -> None:
    if len(sys.argv) < 2:
        print("Usage: uv run python scripts/poll_booking.py <booking_id> [max_wait_seconds]")
        sys.exit(2)

    booking_id = sys.argv[1]
    max_wait = float(sys.argv[2]) if len(sys.argv) > 2 else 60.0

    for var in ("HOLIBOB_API_URL", "HOLIBOB_API_KEY", "HOLIBOB_PARTNER_ID"):
        if not os.environ.get(var):
            print(f"ERROR: {var} not set")
            sys.exit(1)

    # Import after env validation
    from experiencess.domain.commit import classify_state
    from experiencess.domain.checkout_flow import confirm_wait_settings
    from experiencess.errors import BookingNotFoundError
    from experiencess.holibob.client import HolibobClient
    from experiencess.infra.polling import PollStatus, poll_until

    client = HolibobClient()
    _, interval = confirm_wait_settings()

    print(f"Polling booking_id={booking_id} (max {max_wait:.0f}s, every {interval:.0f}s) ...")

    try:
        result = poll_until(
            lambda: client.get_booking_state(booking_id),
            classify_state,
            interval_seconds=interval,
            max_wait_seconds=max_wait,
        )
    except BookingNotFoundError:
        print(f"ERROR: Booking not found: {booking_id}")
        sys.exit(1)

    booking = result.value
    state = booking.state.value if booking and booking.state else "UNKNOWN"

    print()
    print("=== Booking State ===")
    print(f"  state:       {state}")
    print(f"  code:        {booking.code if booking else None}")
    print(f"  voucher_url: {booking.voucher_url if booking else None}")
    print(f"  attempts:    {result.attempts}")

    if result.status is PollStatus.DONE:
        sys.exit(0)
    if result.status is PollStatus.FAILED:
        print("Booking was rejected by the supplier.")
        sys.exit(1)
    print("Still pending; check again later.")
    sys.exit(3)


if __name__ == "__main__":
    main()
