# cinebook/application/facade.py

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Iterable

from cinebook.application.booking_service import BookingLifecycle
from cinebook.application.payment import PaymentProof
from cinebook.application.report_service import ReportAggregator
from cinebook.application.seat_inventory import SeatInventory
from cinebook.application.show_service import ShowScheduler
from cinebook.domain.exceptions import BookingEngineError, ErrorCode
from cinebook.domain.state_machine import BookingStatus
from cinebook.domain.validators import ContactDetails


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperationResult:
    success: bool
    data: Any = None
    error_code: ErrorCode | None = None
    message: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, exc: BookingEngineError) -> "OperationResult":
        return cls(
            success=False,
            error_code=exc.code,
            message=exc.message,
            details=dict(exc.details),
        )


class BookingFacade:
    """
    The boundary controllers talk to. Domain errors come back as failed
    results carrying their error code; only storage outages raise.
    """

    def __init__(
        self,
        inventory: SeatInventory,
        lifecycle: BookingLifecycle,
        scheduler: ShowScheduler,
        reports: ReportAggregator,
    ):
        self.inventory = inventory
        self.lifecycle = lifecycle
        self.scheduler = scheduler
        self.reports = reports

    def _run(self, operation: str, fn: Callable[..., Any], *args, **kwargs) -> OperationResult:
        try:
            return OperationResult.ok(fn(*args, **kwargs))
        except BookingEngineError as exc:
            logger.info("%s rejected: %s (%s)", operation, exc.message, exc.code.value)
            return OperationResult.failure(exc)

    # -----------------------------
    # Customer operations
    # -----------------------------
    def get_availability(self, show_id: str) -> OperationResult:
        return self._run("get_availability", self.inventory.get_availability, show_id)

    def create_booking(
        self,
        show_id: str,
        seats: Iterable,
        email: str,
        phone: str,
        user_id: str,
    ) -> OperationResult:
        return self._run(
            "create_booking",
            self.lifecycle.create,
            show_id,
            seats,
            ContactDetails(email=email, phone=phone),
            user_id,
        )

    def initiate_payment(self, booking_id: str, requester_id: str | None = None) -> OperationResult:
        return self._run(
            "initiate_payment", self.lifecycle.initiate_payment, booking_id, requester_id
        )

    def confirm_booking(
        self,
        booking_id: str,
        payment_id: str,
        signature: str,
        order_ref: str | None = None,
        requester_id: str | None = None,
    ) -> OperationResult:
        return self._run(
            "confirm_booking",
            self.lifecycle.confirm_payment,
            booking_id,
            PaymentProof(payment_id=payment_id, signature=signature, order_ref=order_ref),
            requester_id,
        )

    def cancel_booking(self, booking_id: str, requester_id: str) -> OperationResult:
        return self._run("cancel_booking", self.lifecycle.cancel, booking_id, requester_id)

    def list_bookings_for_user(
        self,
        user_id: str,
        status: BookingStatus | None = None,
    ) -> OperationResult:
        return self._run(
            "list_bookings_for_user", self.lifecycle.list_for_user, user_id, status
        )

    def get_booking_by_id(self, booking_ref: str, requester_id: str | None = None) -> OperationResult:
        if requester_id is None:
            return self._run("get_booking_by_id", self.lifecycle.get, booking_ref)
        return self._run(
            "get_booking_by_id", self.lifecycle.get_for_user, booking_ref, requester_id
        )

    def expire_stale_holds(self) -> OperationResult:
        return self._run("expire_stale_holds", self.lifecycle.expire_stale_holds)

    # -----------------------------
    # Catalogue
    # -----------------------------
    def list_shows(
        self,
        on_date: date | None = None,
        theater: str | None = None,
        movie_id: str | None = None,
        include_inactive: bool = False,
    ) -> OperationResult:
        return self._run(
            "list_shows",
            self.scheduler.list_shows,
            on_date=on_date,
            theater=theater,
            movie_id=movie_id,
            include_inactive=include_inactive,
        )

    def get_show(self, show_id: str) -> OperationResult:
        return self._run("get_show", self.scheduler.get_show, show_id)

    # -----------------------------
    # Admin operations
    # -----------------------------
    def schedule_shows(self, **kwargs) -> OperationResult:
        return self._run("schedule_shows", self.scheduler.schedule, **kwargs)

    def update_show(self, show_id: str, changes: dict[str, Any]) -> OperationResult:
        return self._run("update_show", self.scheduler.update_show, show_id, changes)

    def remove_show(self, show_id: str) -> OperationResult:
        return self._run("remove_show", self.scheduler.remove_show, show_id)

    def list_all_bookings(
        self,
        status: BookingStatus | None = None,
        limit: int | None = None,
    ) -> OperationResult:
        return self._run("list_all_bookings", self.lifecycle.list_all, status, limit)

    def stats(self) -> OperationResult:
        return self._run("stats", self.reports.stats)

    def report(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> OperationResult:
        return self._run("report", self.reports.report, start, end)
