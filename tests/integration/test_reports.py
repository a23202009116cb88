from datetime import datetime, timedelta, timezone
from decimal import Decimal

from cinebook.application.payment import PaymentProof


def _confirmed_booking(lifecycle, payments, show, seats, contact, user_id, payment_id):
    booking = lifecycle.create(show.id, seats, contact, user_id)
    booking = lifecycle.initiate_payment(booking.id)
    return lifecycle.confirm_payment(
        booking.id,
        PaymentProof(payment_id, payments.sign(booking.order_ref, payment_id)),
    )


def test_empty_stats(reports):
    stats = reports.stats()

    assert stats.total_bookings == 0
    assert stats.total_revenue == Decimal("0.00")
    assert stats.tickets_sold == 0


def test_stats_count_confirmed_bookings_only(reports, lifecycle, payments, make_show, contact):
    show = make_show()
    make_show(movie_id="movie-2", movie_title="Oppenheimer")
    _confirmed_booking(lifecycle, payments, show, ["A1", "A2", "A3"], contact, "user-1", "pay_1")
    lifecycle.create(show.id, ["B1"], contact, "user-2")

    stats = reports.stats()

    assert stats.total_bookings == 1
    assert stats.total_revenue == Decimal("738.00")
    assert stats.tickets_sold == 3
    assert stats.active_shows == 2
    assert stats.active_movies == 2


def test_report_groups_revenue_by_movie_and_day(
    reports, lifecycle, payments, make_show, contact, clock
):
    interstellar = make_show(starts_at=clock.now + timedelta(days=3))
    oppenheimer = make_show(
        movie_id="movie-2",
        movie_title="Oppenheimer",
        price=Decimal("100"),
        starts_at=clock.now + timedelta(days=3),
    )
    _confirmed_booking(lifecycle, payments, interstellar, ["A1"], contact, "user-1", "pay_1")
    _confirmed_booking(lifecycle, payments, oppenheimer, ["A1", "A2"], contact, "user-2", "pay_2")
    clock.advance(days=1)
    _confirmed_booking(lifecycle, payments, interstellar, ["A2", "A3"], contact, "user-3", "pay_3")
    lifecycle.cancel(
        lifecycle.create(interstellar.id, ["C1"], contact, "user-4").id, "user-4"
    )

    report = reports.report()

    # 246.00 + 492.00 for Interstellar, 246.00 for Oppenheimer
    assert report.total_bookings == 3
    assert report.total_tickets == 5
    assert report.total_revenue == Decimal("984.00")
    assert report.average_booking_value == Decimal("328.00")
    assert [(m.movie_id, m.bookings, m.tickets, m.revenue) for m in report.top_movies] == [
        ("movie-1", 2, 3, Decimal("738.00")),
        ("movie-2", 1, 2, Decimal("246.00")),
    ]
    assert [t.user_id for t in report.recent_transactions][0] == "user-3"
    assert len(report.recent_transactions) == 3
    assert [(d.day, d.bookings, d.revenue) for d in report.daily_revenue] == [
        ("2030-01-01", 2, Decimal("492.00")),
        ("2030-01-02", 1, Decimal("492.00")),
    ]


def test_report_date_range(reports, lifecycle, payments, make_show, contact, clock):
    show = make_show(starts_at=clock.now + timedelta(days=5))
    _confirmed_booking(lifecycle, payments, show, ["A1"], contact, "user-1", "pay_1")
    clock.advance(days=2)
    _confirmed_booking(lifecycle, payments, show, ["A2"], contact, "user-2", "pay_2")

    report = reports.report(start=datetime(2030, 1, 2, tzinfo=timezone.utc))

    assert report.total_bookings == 1
    assert report.recent_transactions[0].user_id == "user-2"


def test_empty_report_has_zero_average(reports):
    report = reports.report()

    assert report.total_bookings == 0
    assert report.average_booking_value == Decimal("0.00")
    assert report.top_movies == []
    assert report.daily_revenue == []
