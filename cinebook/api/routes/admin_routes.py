from datetime import date, datetime, time, timezone

from fastapi import APIRouter, Depends, Query

from cinebook.api.dependencies import get_facade, require_admin
from cinebook.api.responses import booking_response, show_response, unwrap
from cinebook.api.schemas.schemas import (
    ApiResponse,
    BookingResponse,
    DailyRevenueResponse,
    ExpiredHoldsResponse,
    MovieRevenueResponse,
    ReportResponse,
    ShowRemovalResponse,
    ShowResponse,
    ShowScheduleRequest,
    ShowUpdateRequest,
    StatsResponse,
    TransactionResponse,
)
from cinebook.application.facade import BookingFacade
from cinebook.domain.state_machine import BookingStatus


router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


@router.post("/shows", response_model=ApiResponse[list[ShowResponse]], status_code=201)
def schedule_shows(
    request: ShowScheduleRequest,
    facade: BookingFacade = Depends(get_facade),
):
    shows = unwrap(facade.schedule_shows(**request.model_dump()))
    return ApiResponse(data=[show_response(show, show.total_seats) for show in shows])


@router.put("/shows/{show_id}", response_model=ApiResponse[ShowResponse])
def update_show(
    show_id: str,
    request: ShowUpdateRequest,
    facade: BookingFacade = Depends(get_facade),
):
    changes = {
        name: value
        for name, value in request.model_dump(exclude_unset=True).items()
        if value is not None
    }
    show = unwrap(facade.update_show(show_id, changes))
    return ApiResponse(data=show_response(show))


@router.delete("/shows/{show_id}", response_model=ApiResponse[ShowRemovalResponse])
def remove_show(show_id: str, facade: BookingFacade = Depends(get_facade)):
    deleted = unwrap(facade.remove_show(show_id))
    return ApiResponse(
        data=ShowRemovalResponse(show_id=show_id, deleted=deleted, deactivated=not deleted)
    )


@router.get("/bookings", response_model=ApiResponse[list[BookingResponse]])
def list_all_bookings(
    status: BookingStatus | None = None,
    limit: int | None = Query(default=None, gt=0, le=1000),
    facade: BookingFacade = Depends(get_facade),
):
    bookings = unwrap(facade.list_all_bookings(status, limit))
    return ApiResponse(data=[booking_response(booking) for booking in bookings])


@router.get("/stats", response_model=ApiResponse[StatsResponse])
def get_stats(facade: BookingFacade = Depends(get_facade)):
    stats = unwrap(facade.stats())
    return ApiResponse(
        data=StatsResponse(
            total_bookings=stats.total_bookings,
            total_revenue=float(stats.total_revenue),
            tickets_sold=stats.tickets_sold,
            active_shows=stats.active_shows,
            active_movies=stats.active_movies,
        )
    )


@router.get("/reports", response_model=ApiResponse[ReportResponse])
def get_report(
    start_date: date | None = None,
    end_date: date | None = None,
    facade: BookingFacade = Depends(get_facade),
):
    start = datetime.combine(start_date, time.min, tzinfo=timezone.utc) if start_date else None
    end = datetime.combine(end_date, time.max, tzinfo=timezone.utc) if end_date else None
    report = unwrap(facade.report(start, end))

    return ApiResponse(
        data=ReportResponse(
            total_revenue=float(report.total_revenue),
            total_bookings=report.total_bookings,
            total_tickets=report.total_tickets,
            average_booking_value=float(report.average_booking_value),
            top_movies=[
                MovieRevenueResponse(
                    movie_id=movie.movie_id,
                    title=movie.title,
                    bookings=movie.bookings,
                    tickets=movie.tickets,
                    revenue=float(movie.revenue),
                )
                for movie in report.top_movies
            ],
            recent_transactions=[
                TransactionResponse(
                    booking_id=tx.booking_id,
                    booking_code=tx.booking_code,
                    user_id=tx.user_id,
                    movie_title=tx.movie_title,
                    tickets=tx.tickets,
                    amount=float(tx.amount),
                    status=tx.status.value,
                    created_at=tx.created_at,
                )
                for tx in report.recent_transactions
            ],
            daily_revenue=[
                DailyRevenueResponse(
                    day=bucket.day,
                    bookings=bucket.bookings,
                    revenue=float(bucket.revenue),
                )
                for bucket in report.daily_revenue
            ],
        )
    )


@router.post("/holds/expire", response_model=ApiResponse[ExpiredHoldsResponse])
def expire_holds(facade: BookingFacade = Depends(get_facade)):
    expired = unwrap(facade.expire_stale_holds())
    return ApiResponse(data=ExpiredHoldsResponse(expired=expired))
