"""Shared pytest fixtures for booking core tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402

from helpers import FakeClock, FakeHolibobClient  # noqa: E402


@pytest.fixture
def fake_client():
    return FakeHolibobClient()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def _clear_supplier_env(monkeypatch):
    """Keep real credentials in the shell from leaking into tests."""
    for var in (
        "HOLIBOB_API_URL",
        "HOLIBOB_API_KEY",
        "HOLIBOB_PARTNER_ID",
        "HOLIBOB_API_SECRET",
        "BOOKING_CONFIRM_MAX_WAIT_SECONDS",
        "BOOKING_CONFIRM_POLL_INTERVAL_SECONDS",
    ):
        monkeypatch.delenv(var, raising=False)
