from datetime import date

from fastapi import APIRouter, Depends, Query

from cinebook.api.dependencies import get_current_user_id, get_facade
from cinebook.api.responses import (
    availability_response,
    booking_response,
    show_response,
    unwrap,
)
from cinebook.api.schemas.schemas import (
    ApiResponse,
    AvailabilityResponse,
    BookingRequest,
    BookingResponse,
    PaymentOrderResponse,
    RazorpayVerifyRequest,
    ShowResponse,
)
from cinebook.application.facade import BookingFacade
from cinebook.domain.pricing import to_minor_units
from cinebook.domain.state_machine import BookingStatus


router = APIRouter()


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/shows", response_model=ApiResponse[list[ShowResponse]])
def list_shows(
    on_date: date | None = Query(default=None, alias="date"),
    theater: str | None = None,
    movie_id: str | None = None,
    facade: BookingFacade = Depends(get_facade),
):
    listings = unwrap(facade.list_shows(on_date=on_date, theater=theater, movie_id=movie_id))
    return ApiResponse(
        data=[show_response(item.show, item.available_seats) for item in listings]
    )


@router.get("/shows/{show_id}", response_model=ApiResponse[ShowResponse])
def get_show(show_id: str, facade: BookingFacade = Depends(get_facade)):
    listing = unwrap(facade.get_show(show_id))
    return ApiResponse(data=show_response(listing.show, listing.available_seats))


@router.get("/shows/{show_id}/seats", response_model=ApiResponse[AvailabilityResponse])
def get_seat_availability(show_id: str, facade: BookingFacade = Depends(get_facade)):
    availability = unwrap(facade.get_availability(show_id))
    return ApiResponse(data=availability_response(availability))


@router.post(
    "/bookings",
    response_model=ApiResponse[BookingResponse],
    status_code=201,
)
def create_booking(
    request: BookingRequest,
    user_id: str = Depends(get_current_user_id),
    facade: BookingFacade = Depends(get_facade),
):
    booking = unwrap(
        facade.create_booking(
            show_id=request.show_id,
            seats=[seat.model_dump() for seat in request.seats],
            email=request.email,
            phone=request.phone,
            user_id=user_id,
        )
    )
    return ApiResponse(data=booking_response(booking))


@router.get("/bookings/me", response_model=ApiResponse[list[BookingResponse]])
def list_my_bookings(
    status: BookingStatus | None = None,
    user_id: str = Depends(get_current_user_id),
    facade: BookingFacade = Depends(get_facade),
):
    bookings = unwrap(facade.list_bookings_for_user(user_id, status))
    return ApiResponse(data=[booking_response(booking) for booking in bookings])


@router.get("/bookings/{booking_ref}", response_model=ApiResponse[BookingResponse])
def get_booking(
    booking_ref: str,
    user_id: str = Depends(get_current_user_id),
    facade: BookingFacade = Depends(get_facade),
):
    booking = unwrap(facade.get_booking_by_id(booking_ref, requester_id=user_id))
    return ApiResponse(data=booking_response(booking))


@router.post(
    "/bookings/{booking_id}/payment/order",
    response_model=ApiResponse[PaymentOrderResponse],
)
def create_payment_order(
    booking_id: str,
    user_id: str = Depends(get_current_user_id),
    facade: BookingFacade = Depends(get_facade),
):
    booking = unwrap(facade.initiate_payment(booking_id, requester_id=user_id))
    return ApiResponse(
        data=PaymentOrderResponse(
            booking_id=booking.id,
            order_id=booking.order_ref,
            amount=to_minor_units(booking.total_amount),
            currency=booking.currency,
            key_id=facade.lifecycle.payments.key_id,
        )
    )


@router.post(
    "/bookings/{booking_id}/payment/verify",
    response_model=ApiResponse[BookingResponse],
)
def verify_payment(
    booking_id: str,
    request: RazorpayVerifyRequest,
    user_id: str = Depends(get_current_user_id),
    facade: BookingFacade = Depends(get_facade),
):
    booking = unwrap(
        facade.confirm_booking(
            booking_id,
            payment_id=request.razorpay_payment_id,
            signature=request.razorpay_signature,
            order_ref=request.razorpay_order_id,
            requester_id=user_id,
        )
    )
    return ApiResponse(data=booking_response(booking))


@router.post("/bookings/{booking_id}/cancel", response_model=ApiResponse[BookingResponse])
def cancel_booking(
    booking_id: str,
    user_id: str = Depends(get_current_user_id),
    facade: BookingFacade = Depends(get_facade),
):
    booking = unwrap(facade.cancel_booking(booking_id, user_id))
    return ApiResponse(data=booking_response(booking))
