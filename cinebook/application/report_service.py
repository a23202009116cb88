# cinebook/application/report_service.py

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import distinct, func, select
from sqlalchemy.orm import Session, sessionmaker

from cinebook.domain.state_machine import BookingStatus
from cinebook.infrastructure.db.models import Booking, Show
from cinebook.infrastructure.db.session import session_scope


TOP_MOVIES_LIMIT = 10
RECENT_TRANSACTIONS_LIMIT = 20

_CENTS = Decimal("0.01")


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(_CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class DashboardStats:
    total_bookings: int
    total_revenue: Decimal
    tickets_sold: int
    active_shows: int
    active_movies: int


@dataclass(frozen=True)
class MovieRevenue:
    movie_id: str
    title: str
    bookings: int
    tickets: int
    revenue: Decimal


@dataclass(frozen=True)
class Transaction:
    booking_id: str
    booking_code: str
    user_id: str
    movie_title: str
    tickets: int
    amount: Decimal
    status: BookingStatus
    created_at: datetime


@dataclass(frozen=True)
class DailyRevenue:
    day: str
    bookings: int
    revenue: Decimal


@dataclass(frozen=True)
class RevenueReport:
    total_revenue: Decimal
    total_bookings: int
    total_tickets: int
    average_booking_value: Decimal
    top_movies: list[MovieRevenue] = field(default_factory=list)
    recent_transactions: list[Transaction] = field(default_factory=list)
    daily_revenue: list[DailyRevenue] = field(default_factory=list)


class ReportAggregator:
    """Read-only revenue views. Only confirmed bookings count as sales."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory

    def stats(self) -> DashboardStats:
        with session_scope(self.session_factory) as session:
            bookings, revenue, tickets = session.execute(
                select(
                    func.count(Booking.id),
                    func.sum(Booking.total_amount),
                    func.sum(Booking.seat_count),
                ).where(Booking.status == BookingStatus.CONFIRMED)
            ).one()

            active_shows, active_movies = session.execute(
                select(
                    func.count(Show.id),
                    func.count(distinct(Show.movie_id)),
                ).where(Show.is_active.is_(True))
            ).one()

        return DashboardStats(
            total_bookings=bookings or 0,
            total_revenue=_money(revenue),
            tickets_sold=int(tickets or 0),
            active_shows=active_shows or 0,
            active_movies=active_movies or 0,
        )

    def report(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> RevenueReport:
        """
        Revenue summary for confirmed bookings created in [start, end].
        Either bound may be omitted.
        """
        conditions = [Booking.status == BookingStatus.CONFIRMED]
        if start is not None:
            conditions.append(Booking.created_at >= start)
        if end is not None:
            conditions.append(Booking.created_at <= end)

        with session_scope(self.session_factory) as session:
            bookings, revenue, tickets = session.execute(
                select(
                    func.count(Booking.id),
                    func.sum(Booking.total_amount),
                    func.sum(Booking.seat_count),
                ).where(*conditions)
            ).one()

            revenue_col = func.sum(Booking.total_amount)
            top_movies = [
                MovieRevenue(
                    movie_id=movie_id,
                    title=title,
                    bookings=count,
                    tickets=int(seat_total or 0),
                    revenue=_money(movie_revenue),
                )
                for movie_id, title, count, seat_total, movie_revenue in session.execute(
                    select(
                        Show.movie_id,
                        Show.movie_title,
                        func.count(Booking.id),
                        func.sum(Booking.seat_count),
                        revenue_col,
                    )
                    .join(Show, Show.id == Booking.show_id)
                    .where(*conditions)
                    .group_by(Show.movie_id, Show.movie_title)
                    .order_by(revenue_col.desc())
                    .limit(TOP_MOVIES_LIMIT)
                ).all()
            ]

            recent = [
                Transaction(
                    booking_id=booking.id,
                    booking_code=booking.booking_code,
                    user_id=booking.user_id,
                    movie_title=title,
                    tickets=booking.seat_count,
                    amount=_money(booking.total_amount),
                    status=booking.status,
                    created_at=booking.created_at,
                )
                for booking, title in session.execute(
                    select(Booking, Show.movie_title)
                    .join(Show, Show.id == Booking.show_id)
                    .where(*conditions)
                    .order_by(Booking.created_at.desc())
                    .limit(RECENT_TRANSACTIONS_LIMIT)
                ).all()
            ]

            day_col = func.date(Booking.created_at)
            daily = [
                DailyRevenue(day=str(day), bookings=count, revenue=_money(day_revenue))
                for day, count, day_revenue in session.execute(
                    select(day_col, func.count(Booking.id), func.sum(Booking.total_amount))
                    .where(*conditions)
                    .group_by(day_col)
                    .order_by(day_col)
                ).all()
            ]

        total_revenue = _money(revenue)
        total_bookings = bookings or 0
        average = _money(total_revenue / total_bookings) if total_bookings else _money(0)

        return RevenueReport(
            total_revenue=total_revenue,
            total_bookings=total_bookings,
            total_tickets=int(tickets or 0),
            average_booking_value=average,
            top_movies=top_movies,
            recent_transactions=recent,
            daily_revenue=daily,
        )
