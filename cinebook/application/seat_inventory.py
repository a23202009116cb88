# cinebook/application/seat_inventory.py

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, Iterator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from cinebook.domain.clock import as_utc, utcnow
from cinebook.domain.exceptions import (
    ErrorCode,
    NoActiveHoldError,
    SeatInvalidError,
    SeatUnavailableError,
    ShowNotFoundError,
    ShowStartedError,
    ValidationError,
)
from cinebook.domain.seats import SeatCoordinate, SeatState
from cinebook.infrastructure.db.models import Show
from cinebook.infrastructure.db.session import session_scope
from cinebook.infrastructure.locks import ShowLockRegistry
from cinebook.infrastructure.repositories.seat_repository import SeatRepository
from cinebook.infrastructure.repositories.show_repository import ShowRepository


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Availability:
    show_id: str
    total_seats: int
    seats_per_row: int
    rows: list[str]
    free_count: int
    held_count: int
    booked_count: int
    seat_map: dict[str, SeatState] = field(default_factory=dict)


@dataclass(frozen=True)
class HoldResult:
    """Outcome of a hold attempt. ``reason`` is None on success."""

    show_id: str
    booking_id: str
    seats: list[SeatCoordinate]
    reason: ErrorCode | None = None
    conflicts: list[SeatCoordinate] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.reason is None

    def raise_for_failure(self) -> None:
        if self.reason is None:
            return
        if self.reason == ErrorCode.SEAT_INVALID:
            raise SeatInvalidError(self.conflicts)
        if self.reason == ErrorCode.SEAT_UNAVAILABLE:
            raise SeatUnavailableError(self.conflicts)
        if self.reason == ErrorCode.SHOW_STARTED:
            raise ShowStartedError(self.show_id)
        raise ValueError(f"Unknown hold failure reason: {self.reason}")


class SeatInventory:
    """
    Single source of truth for a show's seat occupancy.

    Every write runs inside ``serialized(show_id)``: the per-show lock is
    taken first, then one transaction that row-locks the show and commits
    before the lock is released. Callers that need to combine seat changes
    with their own writes pass the session they got from ``serialized``.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        locks: ShowLockRegistry,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.locks = locks
        self.clock = clock

    @contextmanager
    def serialized(self, show_id: str) -> Iterator[Session]:
        with self.locks.hold(show_id):
            with session_scope(self.session_factory) as session:
                yield session

    # -----------------------------
    # Queries
    # -----------------------------
    def get_availability(self, show_id: str) -> Availability:
        with session_scope(self.session_factory) as session:
            show = ShowRepository(session).get(show_id)
            if show is None or not show.is_active:
                raise ShowNotFoundError(show_id)

            seat_map = {
                seat.coordinate.label: seat.state
                for seat in SeatRepository(session).occupied(show_id)
            }

        held = sum(1 for state in seat_map.values() if state == SeatState.HELD)
        booked = len(seat_map) - held
        return Availability(
            show_id=show.id,
            total_seats=show.total_seats,
            seats_per_row=show.seats_per_row,
            rows=show.layout.rows,
            free_count=show.total_seats - len(seat_map),
            held_count=held,
            booked_count=booked,
            seat_map=seat_map,
        )

    # -----------------------------
    # Writes
    # -----------------------------
    def try_hold(
        self,
        show_id: str,
        booking_id: str,
        seats: Iterable[SeatCoordinate],
        session: Session | None = None,
    ) -> HoldResult:
        seats = list(dict.fromkeys(SeatCoordinate.of(seat) for seat in seats))

        if session is not None:
            return self._try_hold(session, show_id, booking_id, seats)

        try:
            with self.serialized(show_id) as own_session:
                return self._try_hold(own_session, show_id, booking_id, seats)
        except SeatUnavailableError as exc:
            return HoldResult(
                show_id,
                booking_id,
                seats,
                reason=ErrorCode.SEAT_UNAVAILABLE,
                conflicts=[SeatCoordinate.parse(label) for label in exc.seats],
            )

    def _try_hold(
        self,
        session: Session,
        show_id: str,
        booking_id: str,
        seats: list[SeatCoordinate],
    ) -> HoldResult:
        if not seats:
            raise ValidationError("Please select at least one seat")

        show = self._lock_active_show(session, show_id)

        invalid = [seat for seat in seats if not show.layout.contains(seat)]
        if invalid:
            return HoldResult(
                show_id, booking_id, seats,
                reason=ErrorCode.SEAT_INVALID,
                conflicts=invalid,
            )

        if self._has_started(show):
            return HoldResult(show_id, booking_id, seats, reason=ErrorCode.SHOW_STARTED)

        repo = SeatRepository(session)
        conflicts = [
            seat.coordinate
            for seat in repo.at(show_id, seats)
            if seat.booking_id != booking_id or seat.state != SeatState.HELD
        ]
        if conflicts:
            return HoldResult(
                show_id, booking_id, seats,
                reason=ErrorCode.SEAT_UNAVAILABLE,
                conflicts=sorted(conflicts),
            )

        requested = set(seats)
        current = {seat.coordinate for seat in repo.owned_by(show_id, booking_id, SeatState.HELD)}
        if current == requested:
            return HoldResult(show_id, booking_id, seats)

        # A retried request with a different selection replaces the hold.
        dropped = current - requested
        if dropped:
            repo.free(show_id, booking_id, only_state=SeatState.HELD, seats=dropped)

        repo.hold(show_id, booking_id, [s for s in seats if s not in current], self.clock())
        try:
            session.flush()
        except IntegrityError as exc:
            # Another writer bypassed the show lock and won the race.
            raise SeatUnavailableError(seats) from exc

        logger.info(
            "Held %s seat(s) for booking %s on show %s: %s",
            len(seats),
            booking_id,
            show_id,
            ",".join(seat.label for seat in seats),
        )
        return HoldResult(show_id, booking_id, seats)

    def confirm(
        self,
        show_id: str,
        booking_id: str,
        session: Session | None = None,
    ) -> int:
        """Converts the booking's held seats to booked."""
        if session is None:
            with self.serialized(show_id) as own_session:
                return self.confirm(show_id, booking_id, session=own_session)

        ShowRepository(session).lock(show_id)
        converted = SeatRepository(session).mark_booked(show_id, booking_id)
        if converted == 0:
            raise NoActiveHoldError(booking_id)

        logger.info("Booked %s seat(s) for booking %s on show %s", converted, booking_id, show_id)
        return converted

    def release(
        self,
        show_id: str,
        booking_id: str,
        session: Session | None = None,
    ) -> int:
        """Frees the booking's held seats. Booked seats are left alone."""
        if session is None:
            with self.serialized(show_id) as own_session:
                return self.release(show_id, booking_id, session=own_session)

        ShowRepository(session).lock(show_id)
        released = SeatRepository(session).free(
            show_id, booking_id, only_state=SeatState.HELD
        )
        if released:
            logger.info("Released %s held seat(s) of booking %s", released, booking_id)
        return released

    def revoke(
        self,
        show_id: str,
        booking_id: str,
        session: Session | None = None,
    ) -> int:
        """Frees every seat of the booking, booked ones included."""
        if session is None:
            with self.serialized(show_id) as own_session:
                return self.revoke(show_id, booking_id, session=own_session)

        ShowRepository(session).lock(show_id)
        freed = SeatRepository(session).free(show_id, booking_id)
        logger.info("Revoked %s seat(s) of booking %s", freed, booking_id)
        return freed

    def _lock_active_show(self, session: Session, show_id: str) -> Show:
        show = ShowRepository(session).lock(show_id)
        if not show.is_active:
            raise ShowNotFoundError(show_id)
        return show

    def _has_started(self, show: Show) -> bool:
        return as_utc(show.starts_at) <= self.clock()
