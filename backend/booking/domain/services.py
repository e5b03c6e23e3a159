from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import date, time
from typing import Generic, Optional, Sequence, TypeVar

from ..models import Reservation
from ..utils.time import is_after, validate_date, validate_time, week_bounds
from .errors import (
    WEEKLY_RESERVATION_LIMIT,
    ConflictError,
    InvalidFormatError,
    InvalidIntervalError,
    PastDateError,
    QuotaExceededError,
)

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

_REQUIRED_ON_CREATE = ("person_id", "space_id", "reservation_date", "start_time", "end_time")


@dataclass(frozen=True)
class ReservationInput:
    """Raw request values. ``None`` means the field was not supplied."""

    person_id: Optional[int] = None
    space_id: Optional[int] = None
    reservation_date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None


@dataclass(frozen=True)
class ReservationFields:
    person_id: int
    space_id: int
    reservation_date: date
    start_time: time
    end_time: time

    @classmethod
    def from_reservation(cls, reservation: Reservation) -> "ReservationFields":
        return cls(
            person_id=reservation.person_id,
            space_id=reservation.space_id,
            reservation_date=reservation.reservation_date,
            start_time=reservation.start_time,
            end_time=reservation.end_time,
        )


def resolve_effective_fields(
    request: ReservationInput,
    existing: Optional[ReservationFields] = None,
    *,
    today: date,
) -> ReservationFields:
    """
    Pure merge of request values onto the existing row (or nothing, on create).
    Validates formats of supplied fields, the merged interval and the date floor.
    """
    parsed_date = validate_date(request.reservation_date) if request.reservation_date is not None else None
    parsed_start = validate_time(request.start_time, field="start time") if request.start_time is not None else None
    parsed_end = validate_time(request.end_time, field="end time") if request.end_time is not None else None

    overrides = {
        "person_id": request.person_id,
        "space_id": request.space_id,
        "reservation_date": parsed_date,
        "start_time": parsed_start,
        "end_time": parsed_end,
    }
    supplied = {k: v for k, v in overrides.items() if v is not None}

    if existing is None:
        missing = [name for name in _REQUIRED_ON_CREATE if name not in supplied]
        if missing:
            raise InvalidFormatError(f"Missing required fields: {', '.join(missing)}")
        effective = ReservationFields(**supplied)
    else:
        effective = replace(existing, **supplied)

    if not is_after(effective.start_time, effective.end_time):
        raise InvalidIntervalError()
    if parsed_date is not None and parsed_date < today:
        raise PastDateError()
    return effective


def ensure_no_conflicts(fields: ReservationFields, conflicts: Sequence[Reservation]) -> None:
    if conflicts:
        ordered = sorted(conflicts, key=lambda r: (r.start_time, r.id))
        raise ConflictError(space_id=fields.space_id, reservation_date=fields.reservation_date, conflicts=ordered)


def quota_applies(existing: Optional[ReservationFields], effective: ReservationFields) -> bool:
    """Creation always counts; an update only when it changes owner or week."""
    if existing is None:
        return True
    if effective.person_id != existing.person_id:
        return True
    return week_bounds(effective.reservation_date) != week_bounds(existing.reservation_date)


def ensure_weekly_quota(count: int, *, week_start: date, week_end: date) -> None:
    if count >= WEEKLY_RESERVATION_LIMIT:
        raise QuotaExceededError(week_start=week_start, week_end=week_end, count=count)


def normalize_page(page: int, page_size: int) -> tuple[int, int]:
    if page < 1:
        page = 1
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        page_size = DEFAULT_PAGE_SIZE
    return page, page_size


@dataclass(frozen=True)
class Page(Generic[T]):
    page: int
    page_size: int
    total: int
    items: list[T] = field(default_factory=list)

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size)
