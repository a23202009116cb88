# cinebook/application/booking_service.py

import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Iterable
from uuid import uuid4

from sqlalchemy.orm import Session, sessionmaker

from cinebook.application.payment import PaymentGateway, PaymentProof, PaymentVerification
from cinebook.application.seat_inventory import SeatInventory
from cinebook.domain.clock import as_utc, utcnow
from cinebook.domain.exceptions import (
    AlreadyCancelledError,
    BookingNotFoundError,
    InvalidStateTransitionError,
    NotBookingOwnerError,
    PaymentNotVerifiedError,
    ShowNotFoundError,
    ShowStartedError,
    ValidationError,
)
from cinebook.domain.pricing import PricingCalculator, to_minor_units
from cinebook.domain.seats import normalize_seats
from cinebook.domain.state_machine import BookingStateMachine, BookingStatus, PaymentStatus
from cinebook.domain.validators import ContactDetails, validate_contact
from cinebook.infrastructure.db.models import Booking
from cinebook.infrastructure.db.session import session_scope
from cinebook.infrastructure.repositories.booking_repository import BookingRepository
from cinebook.infrastructure.repositories.show_repository import ShowRepository


logger = logging.getLogger(__name__)


def generate_booking_code(now: datetime) -> str:
    return f"CB-{now.year}-{secrets.token_hex(4).upper()}"


class BookingLifecycle:
    """
    Application service driving a booking from hold to confirmation,
    cancellation or expiry.

    Every state change re-reads the booking under the show's lock and only
    proceeds if it is still in the expected state, so a payment confirmation
    racing the expiry sweep ends with exactly one of the two outcomes.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        inventory: SeatInventory,
        payments: PaymentGateway,
        hold_timeout: timedelta = timedelta(minutes=10),
        max_seats: int = 10,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.inventory = inventory
        self.payments = payments
        self.hold_timeout = hold_timeout
        self.max_seats = max_seats
        self.clock = clock

    # -----------------------------
    # Commands
    # -----------------------------
    def create(
        self,
        show_id: str,
        seats: Iterable,
        contact: ContactDetails,
        user_id: str,
    ) -> Booking:
        if not user_id:
            raise ValidationError("A user id is required to book seats")
        contact = validate_contact(contact.email, contact.phone)
        requested = normalize_seats(seats, max_seats=self.max_seats)
        booking_id = str(uuid4())

        with self.inventory.serialized(show_id) as session:
            show = ShowRepository(session).lock(show_id)
            if not show.is_active:
                raise ShowNotFoundError(show_id)

            pricing = PricingCalculator.compute(show.price, len(requested))

            hold = self.inventory.try_hold(show_id, booking_id, requested, session=session)
            hold.raise_for_failure()

            now = self.clock()
            booking = BookingRepository(session).add(
                Booking(
                    id=booking_id,
                    booking_code=generate_booking_code(now),
                    show_id=show_id,
                    user_id=user_id,
                    seats=[seat.label for seat in requested],
                    seat_count=len(requested),
                    customer_email=contact.email,
                    customer_phone=contact.phone,
                    base_price=pricing.base_price,
                    convenience_fee=pricing.convenience_fee,
                    tax=pricing.tax,
                    total_amount=pricing.total,
                    currency=self.payments.currency,
                    status=BookingStatus.PENDING,
                    payment_status=PaymentStatus.PENDING,
                    hold_expires_at=now + self.hold_timeout,
                    created_at=now,
                )
            )
            session.flush()

        logger.info(
            "Booking %s (%s) created for show %s, seats %s, total %s",
            booking.id,
            booking.booking_code,
            show_id,
            ",".join(booking.seats),
            booking.total_amount,
        )
        return booking

    def initiate_payment(self, booking_id: str, requester_id: str | None = None) -> Booking:
        booking = self._get_owned(booking_id, requester_id)
        if booking.status != BookingStatus.PENDING:
            raise InvalidStateTransitionError(
                booking.status.value,
                BookingStatus.CONFIRMED.value,
                message=f"Booking {booking.id} is {booking.status.value}; payment cannot be started",
            )
        if booking.order_ref:
            return booking

        amount = to_minor_units(booking.total_amount)
        try:
            order_ref = self.payments.initiate_order(booking.id, amount)
        except Exception as exc:
            logger.exception("Payment order creation failed for booking %s", booking.id)
            raise PaymentNotVerifiedError(booking.id, "payment provider unavailable") from exc

        with self.inventory.serialized(booking.show_id) as session:
            current = BookingRepository(session).lock(booking.id)
            if current.status != BookingStatus.PENDING:
                raise InvalidStateTransitionError(
                    current.status.value, BookingStatus.CONFIRMED.value
                )
            if not current.order_ref:
                current.order_ref = order_ref
            booking = current

        logger.info("Payment order %s attached to booking %s", booking.order_ref, booking.id)
        return booking

    def confirm_payment(
        self,
        booking_id: str,
        proof: PaymentProof,
        requester_id: str | None = None,
    ) -> Booking:
        booking = self._get_owned(booking_id, requester_id)

        if booking.status == BookingStatus.CONFIRMED and booking.payment_ref == proof.payment_id:
            return booking
        BookingStateMachine.validate_transition(booking.status, BookingStatus.CONFIRMED)
        if not booking.order_ref:
            raise ValidationError(
                f"Payment has not been initiated for booking {booking.id}",
                booking_id=booking.id,
            )
        if proof.order_ref and proof.order_ref != booking.order_ref:
            raise ValidationError(
                "Order id does not match this booking",
                booking_id=booking.id,
                order_ref=proof.order_ref,
            )
        self._ensure_payment_unused(booking, proof.payment_id)

        if self._hold_lapsed(booking, self.clock()):
            verification = PaymentVerification(verified=False, reason="hold expired")
        else:
            # The provider is called without holding the show lock.
            verification = self._verify(booking, proof)

        with self.inventory.serialized(booking.show_id) as session:
            current = BookingRepository(session).lock(booking.id)
            now = self.clock()
            lapsed = current.status == BookingStatus.PENDING and self._hold_lapsed(current, now)
            if lapsed:
                self._expire(session, current, now)
            elif verification.verified:
                self._transition(session, current, BookingStatus.CONFIRMED)
                self.inventory.confirm(current.show_id, current.id, session=session)
                current.payment_ref = verification.payment_id or proof.payment_id
                current.payment_status = PaymentStatus.COMPLETED
                current.confirmed_at = now
            else:
                self._transition(session, current, BookingStatus.CANCELLED)
                self.inventory.release(current.show_id, current.id, session=session)
                current.payment_status = PaymentStatus.FAILED
                current.cancelled_at = now
            booking = current

        if lapsed:
            logger.warning("Hold on booking %s lapsed before payment was confirmed", booking.id)
            raise InvalidStateTransitionError(
                BookingStatus.EXPIRED.value,
                BookingStatus.CONFIRMED.value,
                message=f"Hold on booking {booking.id} expired before payment was confirmed",
            )
        if not verification.verified:
            logger.warning(
                "Payment for booking %s not verified (%s); hold released",
                booking.id,
                verification.reason,
            )
            raise PaymentNotVerifiedError(booking.id, verification.reason or "not verified")

        logger.info("Booking %s confirmed with payment %s", booking.id, booking.payment_ref)
        return booking

    def cancel(self, booking_id: str, requester_id: str) -> Booking:
        booking = self.get(booking_id)

        with self.inventory.serialized(booking.show_id) as session:
            current = BookingRepository(session).lock(booking.id)
            if current.user_id != requester_id:
                raise NotBookingOwnerError(current.id)
            if current.status == BookingStatus.CANCELLED:
                raise AlreadyCancelledError(current.id)
            BookingStateMachine.validate_transition(current.status, BookingStatus.CANCELLED)

            show = ShowRepository(session).lock(current.show_id)
            if as_utc(show.starts_at) <= self.clock():
                raise ShowStartedError(show.id)

            was_confirmed = current.status == BookingStatus.CONFIRMED
            self._transition(session, current, BookingStatus.CANCELLED)
            if was_confirmed:
                self.inventory.revoke(current.show_id, current.id, session=session)
                current.payment_status = PaymentStatus.REFUND_PENDING
            else:
                self.inventory.release(current.show_id, current.id, session=session)
            current.cancelled_at = self.clock()
            booking = current

        logger.info("Booking %s cancelled by %s", booking.id, requester_id)
        return booking

    def expire_stale_holds(self) -> int:
        now = self.clock()
        with session_scope(self.session_factory) as session:
            candidates = BookingRepository(session).stale_pending(now)

        expired = 0
        for booking_id, show_id in candidates:
            with self.inventory.serialized(show_id) as session:
                current = BookingRepository(session).lock(booking_id)
                # Re-checked under the lock: a confirmation may have won.
                if current.status != BookingStatus.PENDING:
                    continue
                if not self._hold_lapsed(current, now):
                    continue
                self._expire(session, current, now)
            expired += 1
            logger.info("Booking %s expired; seats released", booking_id)

        if expired:
            logger.info("Expired %s stale hold(s)", expired)
        return expired

    # -----------------------------
    # Queries
    # -----------------------------
    def get(self, booking_ref: str) -> Booking:
        """Looks a booking up by id, falling back to its booking code."""
        with session_scope(self.session_factory) as session:
            repo = BookingRepository(session)
            booking = repo.get_by_id(booking_ref) or repo.get_by_code(booking_ref)
        if not booking:
            raise BookingNotFoundError(booking_ref)
        return booking

    def get_for_user(self, booking_ref: str, user_id: str) -> Booking:
        return self._get_owned(booking_ref, user_id)

    def list_for_user(self, user_id: str, status: BookingStatus | None = None) -> list[Booking]:
        with session_scope(self.session_factory) as session:
            return BookingRepository(session).list_for_user(user_id, status)

    def list_all(self, status: BookingStatus | None = None, limit: int | None = None) -> list[Booking]:
        with session_scope(self.session_factory) as session:
            return BookingRepository(session).list_all(status, limit)

    def _get_owned(self, booking_ref: str, requester_id: str | None) -> Booking:
        booking = self.get(booking_ref)
        if requester_id is not None and booking.user_id != requester_id:
            raise NotBookingOwnerError(booking.id)
        return booking

    def _ensure_payment_unused(self, booking: Booking, payment_id: str) -> None:
        if not payment_id:
            raise ValidationError("A payment id is required", booking_id=booking.id)
        with session_scope(self.session_factory) as session:
            other = BookingRepository(session).get_by_payment_ref(payment_id)
        if other is not None and other.id != booking.id:
            raise ValidationError(
                "Payment id already consumed by another booking",
                booking_id=booking.id,
                payment_id=payment_id,
            )

    def _verify(self, booking: Booking, proof: PaymentProof) -> PaymentVerification:
        try:
            return self.payments.verify(booking.order_ref, proof)
        except Exception:
            # Unreachable provider counts as a failed verification.
            logger.exception("Payment verification errored for booking %s", booking.id)
            return PaymentVerification(verified=False, reason="payment provider unavailable")

    @staticmethod
    def _hold_lapsed(booking: Booking, now: datetime) -> bool:
        return as_utc(booking.hold_expires_at) <= now

    def _expire(self, session: Session, booking: Booking, now: datetime) -> None:
        self.inventory.release(booking.show_id, booking.id, session=session)
        self._transition(session, booking, BookingStatus.EXPIRED)
        booking.cancelled_at = now

    @staticmethod
    def _transition(session: Session, booking: Booking, to_status: BookingStatus) -> None:
        BookingStateMachine.validate_transition(booking.status, to_status)
        BookingRepository(session).update_status(booking, to_status)
