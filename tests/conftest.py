from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from cinebook.application.booking_service import BookingLifecycle
from cinebook.application.facade import BookingFacade
from cinebook.application.payment import SimulatedPaymentGateway
from cinebook.application.report_service import ReportAggregator
from cinebook.application.seat_inventory import SeatInventory
from cinebook.application.show_service import ShowScheduler
from cinebook.config import Settings
from cinebook.domain.validators import ContactDetails
from cinebook.infrastructure.db.models import Show
from cinebook.infrastructure.db.session import (
    Base,
    build_engine,
    build_session_factory,
    session_scope,
)
from cinebook.infrastructure.locks import ShowLockRegistry
from cinebook.main import create_app


SIGNING_SECRET = "test-signing-secret"
ADMIN_KEY = "test-admin-key"


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2030, 1, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'cinebook.db'}"


@pytest.fixture
def session_factory(database_url):
    engine = build_engine(database_url)
    Base.metadata.create_all(bind=engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def payments():
    return SimulatedPaymentGateway(SIGNING_SECRET)


@pytest.fixture
def inventory(session_factory, clock):
    return SeatInventory(session_factory, ShowLockRegistry(), clock=clock)


@pytest.fixture
def lifecycle(session_factory, inventory, payments, clock):
    return BookingLifecycle(
        session_factory,
        inventory,
        payments,
        hold_timeout=timedelta(minutes=10),
        max_seats=10,
        clock=clock,
    )


@pytest.fixture
def scheduler(session_factory, inventory):
    return ShowScheduler(session_factory, inventory)


@pytest.fixture
def reports(session_factory):
    return ReportAggregator(session_factory)


@pytest.fixture
def facade(inventory, lifecycle, scheduler, reports):
    return BookingFacade(inventory, lifecycle, scheduler, reports)


@pytest.fixture
def contact():
    return ContactDetails(email="alice@example.com", phone="9876543210")


@pytest.fixture
def make_show(session_factory, clock):
    def _make_show(**overrides) -> Show:
        values = {
            "movie_id": "movie-1",
            "movie_title": "Interstellar",
            "theater": "PVR Phoenix",
            "location": "Mumbai",
            "format": "2D",
            "starts_at": clock.now + timedelta(days=1),
            "price": Decimal("200.00"),
            "total_seats": 120,
            "seats_per_row": 12,
            "is_active": True,
        }
        values.update(overrides)
        with session_scope(session_factory) as session:
            show = Show(**values)
            session.add(show)
            session.flush()
        return show

    return _make_show


@pytest.fixture
def settings(database_url):
    return Settings(
        database_url=database_url,
        db_connect_max_retries=1,
        db_connect_retry_delay=0.0,
        enable_hold_sweeper=False,
        payment_provider="simulated",
        payment_signing_secret=SIGNING_SECRET,
        admin_api_key=ADMIN_KEY,
        log_level="WARNING",
    )


@pytest.fixture
def app(settings, payments, clock):
    return create_app(settings, payment_gateway=payments, clock=clock)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_headers():
    return {"X-Admin-Key": ADMIN_KEY}
