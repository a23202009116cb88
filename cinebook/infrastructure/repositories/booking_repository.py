# cinebook/infrastructure/repositories/booking_repository.py

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from cinebook.domain.exceptions import BookingNotFoundError
from cinebook.domain.state_machine import BookingStatus
from cinebook.infrastructure.db.models import Booking


class BookingRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(
        self,
        booking_id: str,
    ) -> Booking | None:

        stmt = select(Booking).where(Booking.id == booking_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_by_code(self, booking_code: str) -> Booking | None:
        stmt = select(Booking).where(Booking.booking_code == booking_code)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_by_payment_ref(self, payment_ref: str) -> Booking | None:
        stmt = select(Booking).where(Booking.payment_ref == payment_ref)
        return self.db.execute(stmt).scalar_one_or_none()

    def lock(self, booking_id: str) -> Booking:
        stmt = (
            select(Booking)
            .where(Booking.id == booking_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        booking = self.db.execute(stmt).scalar_one_or_none()
        if not booking:
            raise BookingNotFoundError(booking_id)
        return booking

    def add(self, booking: Booking) -> Booking:
        self.db.add(booking)
        return booking

    def list_for_user(
        self,
        user_id: str,
        status: BookingStatus | None = None,
    ) -> list[Booking]:
        stmt = select(Booking).where(Booking.user_id == user_id)
        if status is not None:
            stmt = stmt.where(Booking.status == status)
        stmt = stmt.order_by(Booking.created_at.desc())
        return list(self.db.execute(stmt).scalars().all())

    def list_all(
        self,
        status: BookingStatus | None = None,
        limit: int | None = None,
    ) -> list[Booking]:
        stmt = select(Booking)
        if status is not None:
            stmt = stmt.where(Booking.status == status)
        stmt = stmt.order_by(Booking.created_at.desc())
        if limit:
            stmt = stmt.limit(limit)
        return list(self.db.execute(stmt).scalars().all())

    def stale_pending(self, now: datetime) -> list[tuple[str, str]]:
        stmt = (
            select(Booking.id, Booking.show_id)
            .where(Booking.status == BookingStatus.PENDING)
            .where(Booking.hold_expires_at <= now)
            .order_by(Booking.hold_expires_at)
        )
        return [(booking_id, show_id) for booking_id, show_id in self.db.execute(stmt).all()]

    def update_status(
        self,
        booking: Booking,
        new_status: BookingStatus,
    ) -> None:

        booking.status = new_status
