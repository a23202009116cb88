# cinebook/application/expiry.py

import logging
import threading

from cinebook.application.booking_service import BookingLifecycle
from cinebook.infrastructure.db.session import StorageUnavailableError


logger = logging.getLogger(__name__)


class HoldExpirySweeper:
    """
    Periodically expires pending bookings whose hold window has passed,
    in a daemon thread so it never blocks request handling.
    """

    def __init__(self, lifecycle: BookingLifecycle, interval_seconds: float = 30.0):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.lifecycle = lifecycle
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run,
            name="hold-expiry-sweeper",
            daemon=True,
        )
        self._thread.start()
        logger.info("Hold expiry sweeper started (every %ss)", self.interval_seconds)

    def stop(self, timeout: float = 5.0) -> None:
        if self._thread is None:
            return
        self._stop.set()
        self._thread.join(timeout)
        self._thread = None
        logger.info("Hold expiry sweeper stopped")

    def run_once(self) -> int:
        try:
            return self.lifecycle.expire_stale_holds()
        except StorageUnavailableError as exc:
            logger.warning("Hold sweep skipped, database unavailable: %s", exc)
        except Exception:
            logger.exception("Hold sweep failed")
        return 0

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            self.run_once()
