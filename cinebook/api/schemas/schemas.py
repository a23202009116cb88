from datetime import date, datetime
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, Field


T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    success: Literal[True] = True
    data: T


class SeatRef(BaseModel):
    row: str
    number: int


class BookingRequest(BaseModel):
    show_id: str
    seats: list[SeatRef]
    email: str
    phone: str


class RazorpayVerifyRequest(BaseModel):
    razorpay_order_id: str | None = None
    razorpay_payment_id: str
    razorpay_signature: str


class PriceBreakdownResponse(BaseModel):
    base_price: float
    convenience_fee: float
    tax: float
    total: float
    currency: str


class BookingResponse(BaseModel):
    id: str
    booking_code: str
    show_id: str
    user_id: str
    seats: list[SeatRef]
    status: str
    payment_status: str
    pricing: PriceBreakdownResponse
    order_ref: str | None = None
    payment_ref: str | None = None
    hold_expires_at: datetime
    confirmed_at: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime


class PaymentOrderResponse(BaseModel):
    booking_id: str
    order_id: str
    amount: int
    currency: str
    key_id: str | None = None


class AvailabilityResponse(BaseModel):
    show_id: str
    total_seats: int
    seats_per_row: int
    rows: list[str]
    free_count: int
    held_count: int
    booked_count: int
    seat_map: dict[str, str]


class ShowResponse(BaseModel):
    id: str
    movie_id: str
    movie_title: str
    theater: str
    location: str
    format: str
    starts_at: datetime
    price: float
    total_seats: int
    seats_per_row: int
    available_seats: int | None = None
    is_active: bool


class ShowScheduleRequest(BaseModel):
    movie_id: str
    movie_title: str
    theater: str
    location: str = ""
    format: str = "2D"
    start_date: date
    end_date: date
    time_slots: list[str] = Field(min_length=1)
    price: float = Field(ge=0)
    total_seats: int = Field(default=120, gt=0)
    seats_per_row: int | None = Field(default=None, gt=0)
    utc_offset_minutes: int = Field(default=0, ge=-14 * 60, le=14 * 60)


class ShowUpdateRequest(BaseModel):
    movie_title: str | None = None
    theater: str | None = None
    location: str | None = None
    format: str | None = None
    starts_at: datetime | None = None
    price: float | None = Field(default=None, ge=0)
    total_seats: int | None = Field(default=None, gt=0)
    seats_per_row: int | None = Field(default=None, gt=0)
    is_active: bool | None = None


class ShowRemovalResponse(BaseModel):
    show_id: str
    deleted: bool
    deactivated: bool


class StatsResponse(BaseModel):
    total_bookings: int
    total_revenue: float
    tickets_sold: int
    active_shows: int
    active_movies: int


class MovieRevenueResponse(BaseModel):
    movie_id: str
    title: str
    bookings: int
    tickets: int
    revenue: float


class TransactionResponse(BaseModel):
    booking_id: str
    booking_code: str
    user_id: str
    movie_title: str
    tickets: int
    amount: float
    status: str
    created_at: datetime


class DailyRevenueResponse(BaseModel):
    day: str
    bookings: int
    revenue: float


class ReportResponse(BaseModel):
    total_revenue: float
    total_bookings: int
    total_tickets: int
    average_booking_value: float
    top_movies: list[MovieRevenueResponse]
    recent_transactions: list[TransactionResponse]
    daily_revenue: list[DailyRevenueResponse]


class ExpiredHoldsResponse(BaseModel):
    expired: int
