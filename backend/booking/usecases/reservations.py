from datetime import date
from typing import Optional

from ..domain.errors import NotFoundError
from ..domain.repositories import PersonRepository, ReservationRepository, SpaceRepository
from ..domain.services import (
    Page,
    ReservationFields,
    ReservationInput,
    ensure_no_conflicts,
    ensure_weekly_quota,
    normalize_page,
    quota_applies,
    resolve_effective_fields,
)
from ..models import Reservation
from ..utils.time import today as current_date
from ..utils.time import week_bounds


async def create_reservation(
    person_repo: PersonRepository,
    space_repo: SpaceRepository,
    res_repo: ReservationRepository,
    *,
    request: ReservationInput,
    today: Optional[date] = None,
) -> Reservation:
    fields = resolve_effective_fields(request, today=today or current_date())
    return await _admit(person_repo, space_repo, res_repo, fields=fields)


async def update_reservation(
    person_repo: PersonRepository,
    space_repo: SpaceRepository,
    res_repo: ReservationRepository,
    *,
    reservation_id: int,
    request: ReservationInput,
    today: Optional[date] = None,
) -> Reservation:
    reservation = await res_repo.get_for_update(reservation_id)
    if reservation is None:
        raise NotFoundError("Reservation")
    existing = ReservationFields.from_reservation(reservation)
    fields = resolve_effective_fields(request, existing, today=today or current_date())
    return await _admit(person_repo, space_repo, res_repo, fields=fields, existing=existing, target=reservation)


async def _admit(
    person_repo: PersonRepository,
    space_repo: SpaceRepository,
    res_repo: ReservationRepository,
    *,
    fields: ReservationFields,
    existing: Optional[ReservationFields] = None,
    target: Optional[Reservation] = None,
) -> Reservation:
    """
    References, conflicts, quota, then the write. Person and space rows are
    locked in that order and held until the surrounding transaction ends, so
    admissions sharing a person or a space run one after another.
    """
    person = await person_repo.get_for_update(fields.person_id)
    if person is None:
        raise NotFoundError("Person")
    space = await space_repo.get_for_update(fields.space_id)
    if space is None:
        raise NotFoundError("Space")

    conflicts = await res_repo.find_overlapping(
        fields.space_id,
        fields.reservation_date,
        fields.start_time,
        fields.end_time,
        exclude_id=target.id if target is not None else None,
    )
    ensure_no_conflicts(fields, conflicts)

    if quota_applies(existing, fields):
        week_start, week_end = week_bounds(fields.reservation_date)
        count = await res_repo.count_in_range(fields.person_id, week_start, week_end)
        ensure_weekly_quota(count, week_start=week_start, week_end=week_end)

    if target is None:
        return await res_repo.create(
            person=person,
            space=space,
            reservation_date=fields.reservation_date,
            start_time=fields.start_time,
            end_time=fields.end_time,
        )
    return await res_repo.update(
        target,
        person=person,
        space=space,
        reservation_date=fields.reservation_date,
        start_time=fields.start_time,
        end_time=fields.end_time,
    )


async def get_reservation(res_repo: ReservationRepository, *, reservation_id: int) -> Reservation:
    reservation = await res_repo.get(reservation_id)
    if reservation is None:
        raise NotFoundError("Reservation")
    return reservation


async def delete_reservation(res_repo: ReservationRepository, *, reservation_id: int) -> None:
    deleted = await res_repo.delete(reservation_id)
    if deleted == 0:
        raise NotFoundError("Reservation")


async def list_reservations(
    res_repo: ReservationRepository,
    *,
    page: int = 1,
    page_size: int = 10,
) -> Page[Reservation]:
    page, page_size = normalize_page(page, page_size)
    items, total = await res_repo.list_all(page, page_size)
    return Page(page=page, page_size=page_size, total=total, items=items)


async def list_user_reservations(
    person_repo: PersonRepository,
    res_repo: ReservationRepository,
    *,
    email: str,
    page: int = 1,
    page_size: int = 10,
) -> Page[Reservation]:
    page, page_size = normalize_page(page, page_size)
    person = await person_repo.get_by_email(email.strip().lower())
    if person is None:
        raise NotFoundError("User")
    items, total = await res_repo.list_for_person(person.id, page, page_size)
    return Page(page=page, page_size=page_size, total=total, items=items)
