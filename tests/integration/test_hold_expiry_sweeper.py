import threading

import pytest

from cinebook.application.expiry import HoldExpirySweeper
from cinebook.domain.state_machine import BookingStatus
from cinebook.infrastructure.db.session import StorageUnavailableError


def test_run_once_expires_stale_holds(lifecycle, make_show, contact, clock):
    show = make_show()
    booking = lifecycle.create(show.id, ["A1"], contact, "user-1")
    clock.advance(minutes=15)

    assert HoldExpirySweeper(lifecycle).run_once() == 1
    assert lifecycle.get(booking.id).status == BookingStatus.EXPIRED


def test_run_once_survives_storage_outage(lifecycle, monkeypatch):
    def unavailable():
        raise StorageUnavailableError("connection refused")

    monkeypatch.setattr(lifecycle, "expire_stale_holds", unavailable)

    assert HoldExpirySweeper(lifecycle).run_once() == 0


def test_background_thread_sweeps_until_stopped(lifecycle, monkeypatch):
    swept = threading.Event()

    def expire_stale_holds():
        swept.set()
        return 0

    monkeypatch.setattr(lifecycle, "expire_stale_holds", expire_stale_holds)
    sweeper = HoldExpirySweeper(lifecycle, interval_seconds=0.01)

    sweeper.start()
    try:
        assert swept.wait(timeout=2)
        assert sweeper.running
    finally:
        sweeper.stop()

    assert not sweeper.running


def test_interval_must_be_positive(lifecycle):
    with pytest.raises(ValueError):
        HoldExpirySweeper(lifecycle, interval_seconds=0)
