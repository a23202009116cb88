# cinebook/domain/seats.py

import re
import string
from enum import Enum
from typing import Iterable, NamedTuple

from cinebook.domain.exceptions import ValidationError


MAX_ROWS = len(string.ascii_uppercase)

_LABEL_RE = re.compile(r"^\s*([A-Za-z])\s*(\d+)\s*$")


class SeatState(str, Enum):
    HELD = "held"
    BOOKED = "booked"


class SeatCoordinate(NamedTuple):
    row: str
    number: int

    @property
    def label(self) -> str:
        return f"{self.row}{self.number}"

    @classmethod
    def parse(cls, label: str) -> "SeatCoordinate":
        match = _LABEL_RE.match(label or "")
        if not match:
            raise ValidationError(f"Invalid seat label: {label!r}", seat=label)
        return cls(match.group(1).upper(), int(match.group(2)))

    @classmethod
    def of(cls, value) -> "SeatCoordinate":
        """Accepts a coordinate, a (row, number) pair, a mapping or a label."""
        if isinstance(value, cls):
            return cls(value.row.strip().upper(), value.number)
        if isinstance(value, str):
            return cls.parse(value)
        if isinstance(value, dict):
            row, number = value.get("row"), value.get("number")
        else:
            try:
                row, number = value
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid seat: {value!r}", seat=str(value)) from None
        if not isinstance(row, str) or not row.strip():
            raise ValidationError(f"Invalid seat row: {row!r}", seat=str(value))
        if isinstance(number, bool) or not isinstance(number, int):
            raise ValidationError(f"Invalid seat number: {number!r}", seat=str(value))
        return cls(row.strip().upper(), number)

    def __str__(self) -> str:
        return self.label


class SeatLayout:
    """
    Fixed seat grid of a show: lettered rows of ``seats_per_row`` seats,
    the final row holding whatever remains of ``total_seats``.
    """

    def __init__(self, total_seats: int, seats_per_row: int):
        if total_seats <= 0:
            raise ValueError("total_seats must be positive")
        if seats_per_row <= 0:
            raise ValueError("seats_per_row must be positive")

        row_count = -(-total_seats // seats_per_row)
        if row_count > MAX_ROWS:
            raise ValueError(
                f"{total_seats} seats at {seats_per_row} per row needs "
                f"{row_count} rows; at most {MAX_ROWS} are supported"
            )

        self.total_seats = total_seats
        self.seats_per_row = seats_per_row
        self.rows = list(string.ascii_uppercase[:row_count])

    def seats_in_row(self, row: str) -> int:
        if row not in self.rows:
            return 0
        if row != self.rows[-1]:
            return self.seats_per_row
        return self.total_seats - self.seats_per_row * (len(self.rows) - 1)

    def contains(self, seat: SeatCoordinate) -> bool:
        return 1 <= seat.number <= self.seats_in_row(seat.row)

    def __repr__(self) -> str:
        return (
            f"SeatLayout(total_seats={self.total_seats}, "
            f"seats_per_row={self.seats_per_row})"
        )


def normalize_seats(seats: Iterable, max_seats: int = 10) -> list[SeatCoordinate]:
    """
    Coerces a seat selection to coordinates, dropping duplicates while
    keeping the order in which seats were first requested.
    """
    normalized: list[SeatCoordinate] = []
    seen: set[SeatCoordinate] = set()

    for value in seats or []:
        seat = SeatCoordinate.of(value)
        if seat in seen:
            continue
        seen.add(seat)
        normalized.append(seat)

    if not normalized:
        raise ValidationError("Please select at least one seat")
    if len(normalized) > max_seats:
        raise ValidationError(
            f"A booking can hold at most {max_seats} seats, got {len(normalized)}",
            seat_count=len(normalized),
            max_seats=max_seats,
        )
    return normalized
