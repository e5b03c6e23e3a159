from __future__ import annotations

from datetime import date, time
from typing import Protocol

from ..models import Person, PersonRole, Reservation, Space


class PersonRepository(Protocol):
    async def get(self, person_id: int) -> Person | None: ...

    async def get_for_update(self, person_id: int) -> Person | None: ...

    async def get_by_email(self, email: str) -> Person | None: ...

    async def create(self, *, email: str, role: PersonRole) -> Person: ...

    async def update(self, person: Person, *, email: str, role: PersonRole) -> Person: ...

    async def list_all(self) -> list[Person]: ...

    async def list_by_role(self, role: PersonRole) -> list[Person]: ...

    async def delete(self, person_id: int) -> int: ...


class SpaceRepository(Protocol):
    async def get(self, space_id: int) -> Space | None: ...

    async def get_for_update(self, space_id: int) -> Space | None: ...

    async def create(
        self,
        *,
        name: str,
        location: str,
        capacity: int,
        description: str | None,
    ) -> Space: ...

    async def update(
        self,
        space: Space,
        *,
        name: str,
        location: str,
        capacity: int,
        description: str | None,
    ) -> Space: ...

    async def list_all(self) -> list[Space]: ...

    async def delete(self, space_id: int) -> int: ...


class ReservationRepository(Protocol):
    async def get(self, reservation_id: int) -> Reservation | None: ...

    async def get_for_update(self, reservation_id: int) -> Reservation | None: ...

    async def find_overlapping(
        self,
        space_id: int,
        reservation_date: date,
        start_time: time,
        end_time: time,
        exclude_id: int | None = None,
    ) -> list[Reservation]: ...

    async def count_in_range(self, person_id: int, date_start: date, date_end: date) -> int: ...

    async def create(
        self,
        *,
        person: Person,
        space: Space,
        reservation_date: date,
        start_time: time,
        end_time: time,
    ) -> Reservation: ...

    async def update(
        self,
        reservation: Reservation,
        *,
        person: Person,
        space: Space,
        reservation_date: date,
        start_time: time,
        end_time: time,
    ) -> Reservation: ...

    async def lock_for_person(self, person_id: int) -> list[int]: ...

    async def lock_for_space(self, space_id: int) -> list[int]: ...

    async def delete(self, reservation_id: int) -> int: ...

    async def list_all(self, page: int, page_size: int) -> tuple[list[Reservation], int]: ...

    async def list_for_person(self, person_id: int, page: int, page_size: int) -> tuple[list[Reservation], int]: ...
