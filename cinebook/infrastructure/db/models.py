# cinebook/infrastructure/db/models.py

from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from cinebook.domain.clock import utcnow
from cinebook.domain.seats import SeatCoordinate, SeatLayout, SeatState
from cinebook.domain.state_machine import BookingStatus, PaymentStatus
from cinebook.infrastructure.db.session import Base


SHOW_FORMATS = ("2D", "3D", "IMAX", "4DX")


class Show(Base):
    """
    One scheduled screening with a fixed seat inventory.
    Seat occupancy lives in ShowSeat; a show is only soft-deactivated
    once anybody has booked it.
    """

    __tablename__ = "shows"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    movie_id: Mapped[str] = mapped_column(String(64), nullable=False)
    movie_title: Mapped[str] = mapped_column(String(200), nullable=False)
    theater: Mapped[str] = mapped_column(String(128), nullable=False)
    location: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    format: Mapped[str] = mapped_column(String(8), nullable=False, default="2D")
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_seats: Mapped[int] = mapped_column(Integer, nullable=False, default=120)
    seats_per_row: Mapped[int] = mapped_column(Integer, nullable=False, default=12)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "movie_id",
            "theater",
            "starts_at",
            name="uq_show_movie_theater_start",
        ),
        CheckConstraint("price >= 0", name="ck_show_price_nonnegative"),
        CheckConstraint("total_seats > 0", name="ck_show_total_seats_positive"),
        CheckConstraint("seats_per_row > 0", name="ck_show_seats_per_row_positive"),
        Index("ix_shows_starts_at", "starts_at"),
        Index("ix_shows_is_active", "is_active"),
    )

    @property
    def layout(self) -> SeatLayout:
        return SeatLayout(self.total_seats, self.seats_per_row)


class ShowSeat(Base):
    """
    An occupied seat coordinate. Free seats have no row, so the unique
    constraint makes a double hold impossible at the storage level.
    """

    __tablename__ = "show_seats"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    show_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("shows.id"),
        nullable=False,
    )
    row: Mapped[str] = mapped_column(String(2), nullable=False)
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    state: Mapped[SeatState] = mapped_column(
        Enum(SeatState, name="seat_state"),
        nullable=False,
    )
    booking_id: Mapped[str] = mapped_column(String(36), nullable=False)
    held_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        UniqueConstraint("show_id", "row", "number", name="uq_show_seat"),
        CheckConstraint("number > 0", name="ck_show_seat_number_positive"),
        Index("ix_show_seats_booking", "show_id", "booking_id"),
    )

    @property
    def coordinate(self) -> SeatCoordinate:
        return SeatCoordinate(self.row, self.number)


class Booking(Base):
    """
    Booking table reflecting domain state.
    Domain controls transitions.
    DB stores current state safely.
    """

    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    booking_code: Mapped[str] = mapped_column(String(32), nullable=False)
    show_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("shows.id"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    seats: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    seat_count: Mapped[int] = mapped_column(Integer, nullable=False)
    customer_email: Mapped[str] = mapped_column(String(254), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(16), nullable=False)
    base_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    convenience_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    tax: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="INR")
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus, name="booking_status"),
        nullable=False,
        default=BookingStatus.PENDING,
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, name="payment_status"),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    order_ref: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payment_ref: Mapped[str | None] = mapped_column(String(128), nullable=True)
    hold_expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("booking_code", name="uq_booking_code"),
        UniqueConstraint("payment_ref", name="uq_booking_payment_ref"),
        CheckConstraint(
            "seat_count > 0",
            name="ck_seat_count_positive",
        ),
        Index("ix_bookings_user_created", "user_id", "created_at"),
        Index("ix_bookings_status_expiry", "status", "hold_expires_at"),
        Index("ix_bookings_show", "show_id"),
    )

    @property
    def seat_coordinates(self) -> list[SeatCoordinate]:
        return [SeatCoordinate.parse(label) for label in self.seats]
