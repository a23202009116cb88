# cinebook/application/show_service.py

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from cinebook.application.seat_inventory import SeatInventory
from cinebook.domain.exceptions import ShowHasBookingsError, ShowNotFoundError, ValidationError
from cinebook.domain.seats import SeatLayout
from cinebook.infrastructure.db.models import SHOW_FORMATS, Show
from cinebook.infrastructure.db.session import session_scope
from cinebook.infrastructure.repositories.seat_repository import SeatRepository
from cinebook.infrastructure.repositories.show_repository import ShowRepository


logger = logging.getLogger(__name__)

_SLOT_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

UPDATABLE_FIELDS = (
    "movie_title",
    "theater",
    "location",
    "format",
    "starts_at",
    "price",
    "total_seats",
    "seats_per_row",
    "is_active",
)


@dataclass(frozen=True)
class ShowListing:
    show: Show
    available_seats: int


def parse_time_slot(slot: str) -> time:
    match = _SLOT_RE.match((slot or "").strip())
    if not match:
        raise ValidationError(f"Invalid time slot {slot!r}, expected HH:MM", time_slot=slot)
    return time(int(match.group(1)), int(match.group(2)))


def _price(value: Any) -> Decimal:
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid price: {value!r}", field="price") from None
    if not price.is_finite() or price < 0:
        raise ValidationError("Price must be a non-negative amount", field="price")
    return price


def _layout(total_seats: int, seats_per_row: int) -> SeatLayout:
    try:
        return SeatLayout(total_seats, seats_per_row)
    except ValueError as exc:
        raise ValidationError(str(exc), field="total_seats") from exc


def _format(value: str) -> str:
    fmt = (value or "").strip().upper()
    if fmt not in SHOW_FORMATS:
        raise ValidationError(
            f"Unsupported format {value!r}; expected one of {', '.join(SHOW_FORMATS)}",
            field="format",
        )
    return fmt


class ShowScheduler:
    """
    Admin-side catalogue of shows. Generates batches of screenings and
    guards edits to shows whose seat map is already in use.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        inventory: SeatInventory,
        default_seats_per_row: int = 12,
    ):
        self.session_factory = session_factory
        self.inventory = inventory
        self.default_seats_per_row = default_seats_per_row

    def schedule(
        self,
        movie_id: str,
        movie_title: str,
        theater: str,
        start_date: date,
        end_date: date,
        time_slots: Iterable[str],
        price: Any,
        location: str = "",
        format: str = "2D",
        total_seats: int = 120,
        seats_per_row: int | None = None,
        utc_offset_minutes: int = 0,
    ) -> list[Show]:
        """
        Creates one show per day in [start_date, end_date] and per "HH:MM"
        slot, with slots read as local time at ``utc_offset_minutes``.
        Combinations that already exist are skipped, not duplicated.
        """
        if not movie_id or not movie_title or not theater:
            raise ValidationError("movie_id, movie_title and theater are required")
        if start_date > end_date:
            raise ValidationError("Start date cannot be after end date", field="start_date")

        slots = sorted({parse_time_slot(slot) for slot in time_slots or []})
        if not slots:
            raise ValidationError("At least one time slot is required", field="time_slots")

        price = _price(price)
        fmt = _format(format)
        seats_per_row = seats_per_row or self.default_seats_per_row
        _layout(total_seats, seats_per_row)
        tz = timezone(timedelta(minutes=utc_offset_minutes))

        created: list[Show] = []
        skipped = 0
        with session_scope(self.session_factory) as session:
            repo = ShowRepository(session)
            day = start_date
            while day <= end_date:
                for slot in slots:
                    starts_at = datetime.combine(day, slot, tzinfo=tz).astimezone(timezone.utc)
                    if repo.exists(movie_id, theater, starts_at):
                        skipped += 1
                        continue
                    created.append(
                        repo.add(
                            Show(
                                movie_id=movie_id,
                                movie_title=movie_title,
                                theater=theater,
                                location=location,
                                format=fmt,
                                starts_at=starts_at,
                                price=price,
                                total_seats=total_seats,
                                seats_per_row=seats_per_row,
                                is_active=True,
                            )
                        )
                    )
                day += timedelta(days=1)
            session.flush()

        logger.info(
            "Scheduled %s show(s) of %s at %s (%s skipped as duplicates)",
            len(created),
            movie_id,
            theater,
            skipped,
        )
        return created

    def list_shows(
        self,
        on_date: date | None = None,
        theater: str | None = None,
        movie_id: str | None = None,
        include_inactive: bool = False,
    ) -> list[ShowListing]:
        starts_from = starts_before = None
        if on_date is not None:
            starts_from = datetime.combine(on_date, time.min, tzinfo=timezone.utc)
            starts_before = starts_from + timedelta(days=1)

        with session_scope(self.session_factory) as session:
            shows = ShowRepository(session).list_shows(
                starts_from=starts_from,
                starts_before=starts_before,
                theater=theater,
                movie_id=movie_id,
                include_inactive=include_inactive,
            )
            occupied = SeatRepository(session).occupied_counts(show.id for show in shows)

        return [
            ShowListing(show, show.total_seats - occupied.get(show.id, 0))
            for show in shows
        ]

    def get_show(self, show_id: str) -> ShowListing:
        with session_scope(self.session_factory) as session:
            show = ShowRepository(session).get(show_id)
            if show is None:
                raise ShowNotFoundError(show_id)
            occupied = SeatRepository(session).occupied_counts([show_id])
        return ShowListing(show, show.total_seats - occupied.get(show_id, 0))

    def update_show(self, show_id: str, changes: dict[str, Any]) -> Show:
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(
                f"Cannot update field(s): {', '.join(sorted(unknown))}",
                fields=sorted(unknown),
            )

        with self.inventory.serialized(show_id) as session:
            show = ShowRepository(session).lock(show_id)
            if SeatRepository(session).occupied_counts([show_id]).get(show_id, 0):
                raise ShowHasBookingsError(show_id)

            values = dict(changes)
            if "price" in values:
                values["price"] = _price(values["price"])
            if "format" in values:
                values["format"] = _format(values["format"])
            if "starts_at" in values and values["starts_at"].tzinfo is None:
                raise ValidationError("starts_at must carry a timezone", field="starts_at")
            _layout(
                values.get("total_seats", show.total_seats),
                values.get("seats_per_row", show.seats_per_row),
            )

            for name, value in values.items():
                setattr(show, name, value)
            try:
                session.flush()
            except IntegrityError as exc:
                raise ValidationError(
                    "Another show of this movie already starts then at this theater",
                    field="starts_at",
                ) from exc

        logger.info("Show %s updated: %s", show_id, ", ".join(sorted(changes)))
        return show

    def remove_show(self, show_id: str) -> bool:
        """
        Deletes a show nobody ever booked. Returns False when the show had
        bookings and was deactivated instead.
        """
        with self.inventory.serialized(show_id) as session:
            repo = ShowRepository(session)
            show = repo.lock(show_id)
            if repo.has_bookings(show_id):
                show.is_active = False
                deleted = False
            else:
                repo.delete(show)
                deleted = True

        if deleted:
            self.inventory.locks.forget(show_id)
            logger.info("Show %s deleted", show_id)
        else:
            logger.info("Show %s deactivated; it has bookings", show_id)
        return deleted
