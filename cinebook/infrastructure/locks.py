import threading
from contextlib import contextmanager
from typing import Iterator


class ShowLockRegistry:
    """
    One mutex per show id, shared by every request thread in the process.
    Serializes seat-map read-modify-write sequences for the same show;
    different shows never contend.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, show_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(show_id)
            if lock is None:
                lock = self._locks[show_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, show_id: str) -> Iterator[None]:
        lock = self._lock_for(show_id)
        with lock:
            yield

    def forget(self, show_id: str) -> None:
        with self._guard:
            self._locks.pop(show_id, None)
