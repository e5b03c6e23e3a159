from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Any, List, Optional, Tuple

from sqlalchemy import Select, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from ..domain.repositories import PersonRepository, ReservationRepository, SpaceRepository
from ..models import Person, PersonRole, Reservation, Space


def _utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SqlAlchemyPersonRepository(PersonRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, person_id: int) -> Person | None:
        return await self.session.get(Person, person_id)

    async def get_for_update(self, person_id: int) -> Person | None:
        return await self.session.scalar(select(Person).where(Person.id == person_id).with_for_update())

    async def get_by_email(self, email: str) -> Person | None:
        return await self.session.scalar(select(Person).where(Person.email == email))

    async def create(self, *, email: str, role: PersonRole) -> Person:
        now = _utc_now_naive()
        person = Person(email=email, role=role, created_at=now, updated_at=now)
        self.session.add(person)
        await self.session.flush()
        return person

    async def update(self, person: Person, *, email: str, role: PersonRole) -> Person:
        person.email = email
        person.role = role
        person.updated_at = _utc_now_naive()
        self.session.add(person)
        await self.session.flush()
        return person

    async def list_all(self) -> List[Person]:
        rows = await self.session.scalars(select(Person).order_by(Person.id.asc()))
        return list(rows.all())

    async def list_by_role(self, role: PersonRole) -> List[Person]:
        rows = await self.session.scalars(select(Person).where(Person.role == role).order_by(Person.id.asc()))
        return list(rows.all())

    async def delete(self, person_id: int) -> int:
        result = await self.session.execute(delete(Person).where(Person.id == person_id))
        return int(result.rowcount or 0)


class SqlAlchemySpaceRepository(SpaceRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, space_id: int) -> Space | None:
        return await self.session.get(Space, space_id)

    async def get_for_update(self, space_id: int) -> Space | None:
        return await self.session.scalar(select(Space).where(Space.id == space_id).with_for_update())

    async def create(
        self,
        *,
        name: str,
        location: str,
        capacity: int,
        description: str | None,
    ) -> Space:
        now = _utc_now_naive()
        space = Space(
            name=name,
            location=location,
            capacity=capacity,
            description=description,
            created_at=now,
            updated_at=now,
        )
        self.session.add(space)
        await self.session.flush()
        return space

    async def update(
        self,
        space: Space,
        *,
        name: str,
        location: str,
        capacity: int,
        description: str | None,
    ) -> Space:
        space.name = name
        space.location = location
        space.capacity = capacity
        space.description = description
        space.updated_at = _utc_now_naive()
        self.session.add(space)
        await self.session.flush()
        return space

    async def list_all(self) -> List[Space]:
        rows = await self.session.scalars(select(Space).order_by(Space.id.asc()))
        return list(rows.all())

    async def delete(self, space_id: int) -> int:
        result = await self.session.execute(delete(Space).where(Space.id == space_id))
        return int(result.rowcount or 0)


class SqlAlchemyReservationRepository(ReservationRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _with_owner_and_space() -> Select[Tuple[Reservation]]:
        return select(Reservation).options(joinedload(Reservation.person), joinedload(Reservation.space))

    @staticmethod
    def overlapping_stmt(
        space_id: int,
        reservation_date: date,
        start_time: time,
        end_time: time,
        exclude_id: int | None = None,
    ) -> Select[Tuple[Reservation]]:
        # Half-open intervals: touching endpoints do not overlap.
        stmt = (
            select(Reservation)
            .options(joinedload(Reservation.person))
            .where(
                Reservation.space_id == space_id,
                Reservation.reservation_date == reservation_date,
                Reservation.start_time < end_time,
                Reservation.end_time > start_time,
            )
            .order_by(Reservation.start_time, Reservation.id)
        )
        if exclude_id is not None:
            stmt = stmt.where(Reservation.id != exclude_id)
        return stmt

    @staticmethod
    def count_in_range_stmt(person_id: int, date_start: date, date_end: date) -> Select[Tuple[int]]:
        return select(func.count(Reservation.id)).where(
            Reservation.person_id == person_id,
            Reservation.reservation_date.between(date_start, date_end),
        )

    @classmethod
    def list_all_stmt(cls, page: int, page_size: int) -> Select[Tuple[Reservation]]:
        return (
            cls._with_owner_and_space()
            .order_by(Reservation.reservation_date.asc(), Reservation.start_time.asc(), Reservation.id.asc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        )

    @classmethod
    def list_for_person_stmt(cls, person_id: int, page: int, page_size: int) -> Select[Tuple[Reservation]]:
        return (
            cls._with_owner_and_space()
            .where(Reservation.person_id == person_id)
            .order_by(Reservation.reservation_date.desc(), Reservation.start_time.asc(), Reservation.id.asc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        )

    @staticmethod
    def lock_ids_stmt(*criteria: Any) -> Select[Tuple[int]]:
        # Id order keeps concurrent cascading deletes from locking rows in opposite orders.
        return select(Reservation.id).where(*criteria).order_by(Reservation.id.asc()).with_for_update()

    async def get(self, reservation_id: int) -> Optional[Reservation]:
        stmt = self._with_owner_and_space().where(Reservation.id == reservation_id)
        return await self.session.scalar(stmt)

    async def get_for_update(self, reservation_id: int) -> Optional[Reservation]:
        # selectinload keeps the row lock on the reservation only
        stmt = (
            select(Reservation)
            .options(selectinload(Reservation.person), selectinload(Reservation.space))
            .where(Reservation.id == reservation_id)
            .with_for_update()
        )
        return await self.session.scalar(stmt)

    async def find_overlapping(
        self,
        space_id: int,
        reservation_date: date,
        start_time: time,
        end_time: time,
        exclude_id: int | None = None,
    ) -> List[Reservation]:
        stmt = self.overlapping_stmt(space_id, reservation_date, start_time, end_time, exclude_id)
        rows = await self.session.scalars(stmt)
        return list(rows.all())

    async def count_in_range(self, person_id: int, date_start: date, date_end: date) -> int:
        return int(await self.session.scalar(self.count_in_range_stmt(person_id, date_start, date_end)) or 0)

    async def create(
        self,
        *,
        person: Person,
        space: Space,
        reservation_date: date,
        start_time: time,
        end_time: time,
    ) -> Reservation:
        now = _utc_now_naive()
        reservation = Reservation(
            person=person,
            space=space,
            reservation_date=reservation_date,
            start_time=start_time,
            end_time=end_time,
            created_at=now,
            updated_at=now,
        )
        self.session.add(reservation)
        await self.session.flush()
        return reservation

    async def update(
        self,
        reservation: Reservation,
        *,
        person: Person,
        space: Space,
        reservation_date: date,
        start_time: time,
        end_time: time,
    ) -> Reservation:
        reservation.person = person
        reservation.space = space
        reservation.reservation_date = reservation_date
        reservation.start_time = start_time
        reservation.end_time = end_time
        reservation.updated_at = _utc_now_naive()
        self.session.add(reservation)
        await self.session.flush()
        return reservation

    async def lock_for_person(self, person_id: int) -> List[int]:
        rows = await self.session.scalars(self.lock_ids_stmt(Reservation.person_id == person_id))
        return list(rows.all())

    async def lock_for_space(self, space_id: int) -> List[int]:
        rows = await self.session.scalars(self.lock_ids_stmt(Reservation.space_id == space_id))
        return list(rows.all())

    async def delete(self, reservation_id: int) -> int:
        result = await self.session.execute(delete(Reservation).where(Reservation.id == reservation_id))
        return int(result.rowcount or 0)

    async def list_all(self, page: int, page_size: int) -> Tuple[List[Reservation], int]:
        total = int(await self.session.scalar(select(func.count(Reservation.id))) or 0)
        rows = await self.session.scalars(self.list_all_stmt(page, page_size))
        return list(rows.all()), total

    async def list_for_person(self, person_id: int, page: int, page_size: int) -> Tuple[List[Reservation], int]:
        total = int(
            await self.session.scalar(select(func.count(Reservation.id)).where(Reservation.person_id == person_id))
            or 0
        )
        rows = await self.session.scalars(self.list_for_person_stmt(person_id, page, page_size))
        return list(rows.all()), total
