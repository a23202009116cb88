# cinebook/infrastructure/repositories/seat_repository.py

from datetime import datetime
from typing import Iterable

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.orm import Session

from cinebook.domain.seats import SeatCoordinate, SeatState
from cinebook.infrastructure.db.models import ShowSeat


class SeatRepository:
    """Row-level access to the occupied part of a show's seat map."""

    def __init__(self, db: Session):
        self.db = db

    def occupied(self, show_id: str) -> list[ShowSeat]:
        stmt = (
            select(ShowSeat)
            .where(ShowSeat.show_id == show_id)
            .order_by(ShowSeat.row, ShowSeat.number)
        )
        return list(self.db.execute(stmt).scalars().all())

    def at(self, show_id: str, seats: Iterable[SeatCoordinate]) -> list[ShowSeat]:
        seats = list(seats)
        if not seats:
            return []

        stmt = select(ShowSeat).where(
            ShowSeat.show_id == show_id,
            or_(
                *(
                    and_(ShowSeat.row == seat.row, ShowSeat.number == seat.number)
                    for seat in seats
                )
            ),
        )
        return list(self.db.execute(stmt).scalars().all())

    def owned_by(
        self,
        show_id: str,
        booking_id: str,
        state: SeatState | None = None,
    ) -> list[ShowSeat]:
        stmt = select(ShowSeat).where(
            ShowSeat.show_id == show_id,
            ShowSeat.booking_id == booking_id,
        )
        if state is not None:
            stmt = stmt.where(ShowSeat.state == state)
        return list(self.db.execute(stmt).scalars().all())

    def hold(
        self,
        show_id: str,
        booking_id: str,
        seats: Iterable[SeatCoordinate],
        held_at: datetime,
    ) -> None:
        self.db.add_all(
            ShowSeat(
                show_id=show_id,
                row=seat.row,
                number=seat.number,
                state=SeatState.HELD,
                booking_id=booking_id,
                held_at=held_at,
            )
            for seat in seats
        )

    def mark_booked(self, show_id: str, booking_id: str) -> int:
        stmt = (
            update(ShowSeat)
            .where(
                ShowSeat.show_id == show_id,
                ShowSeat.booking_id == booking_id,
                ShowSeat.state == SeatState.HELD,
            )
            .values(state=SeatState.BOOKED)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def free(
        self,
        show_id: str,
        booking_id: str,
        only_state: SeatState | None = None,
        seats: Iterable[SeatCoordinate] | None = None,
    ) -> int:
        conditions = [
            ShowSeat.show_id == show_id,
            ShowSeat.booking_id == booking_id,
        ]
        if only_state is not None:
            conditions.append(ShowSeat.state == only_state)
        if seats is not None:
            seats = list(seats)
            if not seats:
                return 0
            conditions.append(
                or_(
                    *(
                        and_(ShowSeat.row == seat.row, ShowSeat.number == seat.number)
                        for seat in seats
                    )
                )
            )

        stmt = (
            delete(ShowSeat)
            .where(*conditions)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def occupied_counts(self, show_ids: Iterable[str]) -> dict[str, int]:
        show_ids = list(show_ids)
        if not show_ids:
            return {}

        stmt = (
            select(ShowSeat.show_id, func.count(ShowSeat.id))
            .where(ShowSeat.show_id.in_(show_ids))
            .group_by(ShowSeat.show_id)
        )
        return {show_id: count for show_id, count in self.db.execute(stmt).all()}
