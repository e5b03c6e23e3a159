from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from ..models import Reservation


WEEKLY_RESERVATION_LIMIT = 3


class ReservationError(Exception):
    """Base class for admission rejections and store failures."""


class InvalidFormatError(ReservationError):
    pass


class InvalidIntervalError(ReservationError):
    def __init__(self, message: str = "End time must be after start time") -> None:
        super().__init__(message)


class PastDateError(ReservationError):
    def __init__(self, message: str = "Cannot create reservations for past dates") -> None:
        super().__init__(message)


class NotFoundError(ReservationError):
    def __init__(self, kind: str) -> None:
        self.kind = kind
        super().__init__(f"{kind} not found")


class ConflictError(ReservationError):
    def __init__(self, *, space_id: int, reservation_date: date, conflicts: Sequence["Reservation"]) -> None:
        self.space_id = space_id
        self.reservation_date = reservation_date
        self.conflicts = list(conflicts)
        details = ", ".join(
            f"{c.start_time:%H:%M}-{c.end_time:%H:%M} "
            f"(reserved by {c.person.email if c.person is not None else 'unknown'})"
            for c in self.conflicts
        )
        super().__init__(
            f"Time slot conflict detected for this space on {reservation_date.isoformat()}. "
            f"Existing reservations: {details}"
        )


class QuotaExceededError(ReservationError):
    def __init__(self, *, week_start: date, week_end: date, count: int) -> None:
        self.week_start = week_start
        self.week_end = week_end
        self.count = count
        super().__init__(
            f"Client has reached the maximum of {WEEKLY_RESERVATION_LIMIT} reservations for the week of "
            f"{week_start.isoformat()} to {week_end.isoformat()}. Current count: {count}"
        )


class DuplicateEmailError(ReservationError):
    pass


class StoreFailureError(ReservationError):
    """Persistence failed for a reason other than a business rule."""
