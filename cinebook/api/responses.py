from fastapi import HTTPException, status

from cinebook.api.schemas.schemas import (
    AvailabilityResponse,
    BookingResponse,
    PriceBreakdownResponse,
    SeatRef,
    ShowResponse,
)
from cinebook.application.facade import OperationResult
from cinebook.application.seat_inventory import Availability
from cinebook.domain.exceptions import ErrorCode
from cinebook.infrastructure.db.models import Booking, Show


ERROR_STATUS = {
    ErrorCode.SHOW_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.BOOKING_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.SEAT_INVALID: status.HTTP_400_BAD_REQUEST,
    ErrorCode.SEAT_UNAVAILABLE: status.HTTP_409_CONFLICT,
    ErrorCode.SHOW_STARTED: status.HTTP_409_CONFLICT,
    ErrorCode.ALREADY_CANCELLED: status.HTTP_409_CONFLICT,
    ErrorCode.NO_ACTIVE_HOLD: status.HTTP_409_CONFLICT,
    ErrorCode.PAYMENT_NOT_VERIFIED: status.HTTP_402_PAYMENT_REQUIRED,
    ErrorCode.VALIDATION_ERROR: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.INVALID_STATE_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorCode.NOT_BOOKING_OWNER: status.HTTP_403_FORBIDDEN,
    ErrorCode.SHOW_HAS_BOOKINGS: status.HTTP_409_CONFLICT,
}


def unwrap(result: OperationResult):
    """Returns the payload of a successful result or raises the matching HTTP error."""
    if result.success:
        return result.data

    raise HTTPException(
        status_code=ERROR_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST),
        detail={
            "success": False,
            "code": result.error_code.value,
            "message": result.message,
            "details": result.details,
        },
    )


def booking_response(booking: Booking) -> BookingResponse:
    return BookingResponse(
        id=booking.id,
        booking_code=booking.booking_code,
        show_id=booking.show_id,
        user_id=booking.user_id,
        seats=[
            SeatRef(row=seat.row, number=seat.number)
            for seat in booking.seat_coordinates
        ],
        status=booking.status.value,
        payment_status=booking.payment_status.value,
        pricing=PriceBreakdownResponse(
            base_price=float(booking.base_price),
            convenience_fee=float(booking.convenience_fee),
            tax=float(booking.tax),
            total=float(booking.total_amount),
            currency=booking.currency,
        ),
        order_ref=booking.order_ref,
        payment_ref=booking.payment_ref,
        hold_expires_at=booking.hold_expires_at,
        confirmed_at=booking.confirmed_at,
        cancelled_at=booking.cancelled_at,
        created_at=booking.created_at,
    )


def show_response(show: Show, available_seats: int | None = None) -> ShowResponse:
    return ShowResponse(
        id=show.id,
        movie_id=show.movie_id,
        movie_title=show.movie_title,
        theater=show.theater,
        location=show.location,
        format=show.format,
        starts_at=show.starts_at,
        price=float(show.price),
        total_seats=show.total_seats,
        seats_per_row=show.seats_per_row,
        available_seats=available_seats,
        is_active=show.is_active,
    )


def availability_response(availability: Availability) -> AvailabilityResponse:
    return AvailabilityResponse(
        show_id=availability.show_id,
        total_seats=availability.total_seats,
        seats_per_row=availability.seats_per_row,
        rows=availability.rows,
        free_count=availability.free_count,
        held_count=availability.held_count,
        booked_count=availability.booked_count,
        seat_map={label: state.value for label, state in availability.seat_map.items()},
    )
