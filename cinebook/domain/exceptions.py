from enum import Enum
from typing import Any, Iterable


class ErrorCode(str, Enum):
    SHOW_NOT_FOUND = "SHOW_NOT_FOUND"
    BOOKING_NOT_FOUND = "BOOKING_NOT_FOUND"
    SEAT_INVALID = "SEAT_INVALID"
    SEAT_UNAVAILABLE = "SEAT_UNAVAILABLE"
    SHOW_STARTED = "SHOW_STARTED"
    ALREADY_CANCELLED = "ALREADY_CANCELLED"
    NO_ACTIVE_HOLD = "NO_ACTIVE_HOLD"
    PAYMENT_NOT_VERIFIED = "PAYMENT_NOT_VERIFIED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_STATE_TRANSITION = "INVALID_STATE_TRANSITION"
    NOT_BOOKING_OWNER = "NOT_BOOKING_OWNER"
    SHOW_HAS_BOOKINGS = "SHOW_HAS_BOOKINGS"


class BookingEngineError(Exception):
    """
    Base exception for all expected, recoverable domain errors.
    Every subclass carries a stable error code for the query surface.
    """

    code: ErrorCode = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str, **details: Any):
        self.message = message
        self.details = details
        super().__init__(message)


def _labels(seats: Iterable[Any]) -> list[str]:
    return [getattr(seat, "label", str(seat)) for seat in seats]


class ShowNotFoundError(BookingEngineError):
    code = ErrorCode.SHOW_NOT_FOUND

    def __init__(self, show_id: str):
        self.show_id = show_id
        super().__init__(f"Show {show_id} not found", show_id=show_id)


class BookingNotFoundError(BookingEngineError):
    code = ErrorCode.BOOKING_NOT_FOUND

    def __init__(self, booking_id: str):
        self.booking_id = booking_id
        super().__init__(f"Booking {booking_id} not found", booking_id=booking_id)


class SeatInvalidError(BookingEngineError):
    """Raised when a seat coordinate lies outside the show's layout."""

    code = ErrorCode.SEAT_INVALID

    def __init__(self, seats: Iterable[Any]):
        self.seats = _labels(seats)
        joined = ", ".join(self.seats)
        super().__init__(
            f"Seat {joined} does not exist for this show"
            if len(self.seats) == 1
            else f"Seats {joined} do not exist for this show",
            seats=self.seats,
        )


class SeatUnavailableError(BookingEngineError):
    """Raised when requested seats are held or booked by another booking."""

    code = ErrorCode.SEAT_UNAVAILABLE

    def __init__(self, seats: Iterable[Any]):
        self.seats = _labels(seats)
        joined = ", ".join(self.seats)
        super().__init__(
            f"Seat {joined} is already booked"
            if len(self.seats) == 1
            else f"Seats {joined} are already booked",
            seats=self.seats,
        )


class ShowStartedError(BookingEngineError):
    code = ErrorCode.SHOW_STARTED

    def __init__(self, show_id: str):
        self.show_id = show_id
        super().__init__(
            f"Show {show_id} has already started",
            show_id=show_id,
        )


class InvalidStateTransitionError(BookingEngineError):
    """
    Raised when an illegal booking state transition is attempted.
    """

    code = ErrorCode.INVALID_STATE_TRANSITION

    def __init__(self, from_state: str, to_state: str, message: str | None = None):
        self.from_state = from_state
        self.to_state = to_state

        if message is None:
            message = (
                f"Illegal state transition attempted: "
                f"{from_state} -> {to_state}"
            )
        super().__init__(message, from_state=from_state, to_state=to_state)


class AlreadyCancelledError(InvalidStateTransitionError):
    code = ErrorCode.ALREADY_CANCELLED

    def __init__(self, booking_id: str):
        super().__init__(
            "cancelled",
            "cancelled",
            message=f"Booking {booking_id} is already cancelled",
        )


class NoActiveHoldError(BookingEngineError):
    code = ErrorCode.NO_ACTIVE_HOLD

    def __init__(self, booking_id: str):
        self.booking_id = booking_id
        super().__init__(
            f"Booking {booking_id} holds no seats; the hold may have expired",
            booking_id=booking_id,
        )


class PaymentNotVerifiedError(BookingEngineError):
    code = ErrorCode.PAYMENT_NOT_VERIFIED

    def __init__(self, booking_id: str, reason: str = "payment could not be verified"):
        self.booking_id = booking_id
        super().__init__(
            f"Payment for booking {booking_id} was not verified: {reason}",
            booking_id=booking_id,
            reason=reason,
        )


class ValidationError(BookingEngineError):
    """Raised for malformed contact details or an out-of-range seat count."""

    code = ErrorCode.VALIDATION_ERROR


class NotBookingOwnerError(BookingEngineError):
    code = ErrorCode.NOT_BOOKING_OWNER

    def __init__(self, booking_id: str):
        super().__init__(
            f"Not authorized to modify booking {booking_id}",
            booking_id=booking_id,
        )


class ShowHasBookingsError(BookingEngineError):
    code = ErrorCode.SHOW_HAS_BOOKINGS

    def __init__(self, show_id: str):
        super().__init__(
            f"Show {show_id} has seat reservations and cannot be changed. "
            "Please schedule a new show instead.",
            show_id=show_id,
        )
