import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Callable

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError

from cinebook.api.routes.admin_routes import router as admin_router
from cinebook.api.routes.routes import router
from cinebook.application.booking_service import BookingLifecycle
from cinebook.application.expiry import HoldExpirySweeper
from cinebook.application.facade import BookingFacade
from cinebook.application.payment import PaymentGateway, build_payment_gateway
from cinebook.application.report_service import ReportAggregator
from cinebook.application.seat_inventory import SeatInventory
from cinebook.application.show_service import ShowScheduler
from cinebook.config import Settings, load_settings
from cinebook.domain.clock import utcnow
from cinebook.infrastructure.db.session import (
    Base,
    StorageUnavailableError,
    build_engine,
    build_session_factory,
)
from cinebook.infrastructure.locks import ShowLockRegistry


logger = logging.getLogger(__name__)


def _wait_for_db(engine: Engine, settings: Settings) -> None:
    # Handles the common case where API starts before Postgres is ready.
    max_retries = settings.db_connect_max_retries
    retry_delay_seconds = settings.db_connect_retry_delay

    for attempt in range(1, max_retries + 1):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database is reachable.")
            return
        except OperationalError:
            if attempt == max_retries:
                logger.exception(
                    "Database not reachable after %s attempts. Check DATABASE_URL and Postgres status.",
                    max_retries,
                )
                raise
            logger.warning(
                "Database not ready (attempt %s/%s). Retrying in %.1f seconds...",
                attempt,
                max_retries,
                retry_delay_seconds,
            )
            time.sleep(retry_delay_seconds)


def create_app(
    settings: Settings | None = None,
    payment_gateway: PaymentGateway | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    engine = build_engine(settings.database_url)
    session_factory = build_session_factory(engine)
    payments = payment_gateway or build_payment_gateway(settings)

    inventory = SeatInventory(session_factory, ShowLockRegistry(), clock=clock)
    lifecycle = BookingLifecycle(
        session_factory,
        inventory,
        payments,
        hold_timeout=timedelta(minutes=settings.hold_timeout_minutes),
        max_seats=settings.max_seats_per_booking,
        clock=clock,
    )
    sweeper = HoldExpirySweeper(lifecycle, settings.hold_sweep_interval_seconds)
    facade = BookingFacade(
        inventory,
        lifecycle,
        ShowScheduler(
            session_factory,
            inventory,
            default_seats_per_row=settings.default_seats_per_row,
        ),
        ReportAggregator(session_factory),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _wait_for_db(engine, settings)
        Base.metadata.create_all(bind=engine)
        if settings.enable_hold_sweeper:
            sweeper.start()
        try:
            yield
        finally:
            sweeper.stop()
            engine.dispose()

    app = FastAPI(title="CineBook Seat Booking Engine", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.facade = facade
    app.state.sweeper = sweeper

    @app.exception_handler(StorageUnavailableError)
    async def storage_unavailable_handler(request: Request, exc: StorageUnavailableError):
        logger.warning("Storage unavailable while serving %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "detail": {
                    "success": False,
                    "code": "STORAGE_UNAVAILABLE",
                    "message": "Booking storage is temporarily unavailable. Please retry.",
                    "details": {},
                }
            },
        )

    app.include_router(router)
    app.include_router(admin_router)
    return app
