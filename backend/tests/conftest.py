import asyncio
import itertools
from collections import defaultdict
from datetime import date, datetime, time
from typing import Optional

import pytest
from booking.models import Person, PersonRole, Reservation, Space


def _now() -> datetime:
    return datetime(2030, 1, 1, 0, 0)


class InMemoryStore:
    """
    Shared rows plus per-row asyncio locks. A lock taken through a
    ``get_for_update`` call is held until the owning transaction exits, and
    every read yields to the loop so concurrent admissions interleave.
    """

    def __init__(self) -> None:
        self.persons: dict[int, Person] = {}
        self.spaces: dict[int, Space] = {}
        self.reservations: dict[int, Reservation] = {}
        self._ids = itertools.count(1)
        self._locks: defaultdict[tuple[str, int], asyncio.Lock] = defaultdict(asyncio.Lock)

    def next_id(self) -> int:
        return next(self._ids)

    def add_person(self, email: str, role: PersonRole = PersonRole.CLIENT) -> Person:
        person = Person(id=self.next_id(), email=email, role=role, created_at=_now(), updated_at=_now())
        self.persons[person.id] = person
        return person

    def add_space(self, name: str = "Room", capacity: int = 12, location: str = "Floor 1") -> Space:
        space = Space(
            id=self.next_id(),
            name=name,
            location=location,
            capacity=capacity,
            description=None,
            created_at=_now(),
            updated_at=_now(),
        )
        self.spaces[space.id] = space
        return space

    def add_reservation(self, person: Person, space: Space, day: date, start: time, end: time) -> Reservation:
        reservation = Reservation(
            id=self.next_id(),
            person_id=person.id,
            space_id=space.id,
            reservation_date=day,
            start_time=start,
            end_time=end,
            created_at=_now(),
            updated_at=_now(),
        )
        reservation.person = person
        reservation.space = space
        self.reservations[reservation.id] = reservation
        return reservation

    def transaction(self) -> "FakeTransaction":
        return FakeTransaction(self)


class FakeTransaction:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self.held: list[asyncio.Lock] = []
        self._held_keys: set[tuple[str, int]] = set()
        self.persons = FakePersonRepo(self)
        self.spaces = FakeSpaceRepo(self)
        self.reservations = FakeReservationRepo(self)

    async def lock(self, kind: str, row_id: int) -> None:
        key = (kind, row_id)
        if key not in self._held_keys:
            lock = self.store._locks[key]
            await lock.acquire()
            self.held.append(lock)
            self._held_keys.add(key)
        await asyncio.sleep(0)

    async def __aenter__(self) -> "FakeTransaction":
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> bool:
        for lock in reversed(self.held):
            lock.release()
        self.held.clear()
        self._held_keys.clear()
        return False


class FakePersonRepo:
    def __init__(self, txn: FakeTransaction) -> None:
        self.txn = txn
        self.store = txn.store

    async def get(self, person_id: int) -> Optional[Person]:
        await asyncio.sleep(0)
        return self.store.persons.get(person_id)

    async def get_for_update(self, person_id: int) -> Optional[Person]:
        await self.txn.lock("person", person_id)
        return self.store.persons.get(person_id)

    async def get_by_email(self, email: str) -> Optional[Person]:
        await asyncio.sleep(0)
        return next((p for p in self.store.persons.values() if p.email == email), None)

    async def create(self, *, email: str, role: PersonRole) -> Person:
        return self.store.add_person(email, role)

    async def update(self, person: Person, *, email: str, role: PersonRole) -> Person:
        await asyncio.sleep(0)
        person.email = email
        person.role = role
        return person

    async def list_all(self) -> list[Person]:
        return sorted(self.store.persons.values(), key=lambda p: p.id)

    async def list_by_role(self, role: PersonRole) -> list[Person]:
        return [p for p in await self.list_all() if p.role == role]

    async def delete(self, person_id: int) -> int:
        if self.store.persons.pop(person_id, None) is None:
            return 0
        for rid in [r.id for r in self.store.reservations.values() if r.person_id == person_id]:
            del self.store.reservations[rid]
        return 1


class FakeSpaceRepo:
    def __init__(self, txn: FakeTransaction) -> None:
        self.txn = txn
        self.store = txn.store

    async def get(self, space_id: int) -> Optional[Space]:
        await asyncio.sleep(0)
        return self.store.spaces.get(space_id)

    async def get_for_update(self, space_id: int) -> Optional[Space]:
        await self.txn.lock("space", space_id)
        return self.store.spaces.get(space_id)

    async def create(self, *, name: str, location: str, capacity: int, description: Optional[str]) -> Space:
        space = self.store.add_space(name=name, capacity=capacity, location=location)
        space.description = description
        return space

    async def update(
        self, space: Space, *, name: str, location: str, capacity: int, description: Optional[str]
    ) -> Space:
        await asyncio.sleep(0)
        space.name = name
        space.location = location
        space.capacity = capacity
        space.description = description
        return space

    async def list_all(self) -> list[Space]:
        return sorted(self.store.spaces.values(), key=lambda s: s.id)

    async def delete(self, space_id: int) -> int:
        if self.store.spaces.pop(space_id, None) is None:
            return 0
        for rid in [r.id for r in self.store.reservations.values() if r.space_id == space_id]:
            del self.store.reservations[rid]
        return 1


class FakeReservationRepo:
    def __init__(self, txn: FakeTransaction) -> None:
        self.txn = txn
        self.store = txn.store

    async def get(self, reservation_id: int) -> Optional[Reservation]:
        await asyncio.sleep(0)
        return self.store.reservations.get(reservation_id)

    async def get_for_update(self, reservation_id: int) -> Optional[Reservation]:
        await self.txn.lock("reservation", reservation_id)
        return self.store.reservations.get(reservation_id)

    async def find_overlapping(
        self,
        space_id: int,
        reservation_date: date,
        start_time: time,
        end_time: time,
        exclude_id: Optional[int] = None,
    ) -> list[Reservation]:
        await asyncio.sleep(0)
        return sorted(
            (
                r
                for r in self.store.reservations.values()
                if r.space_id == space_id
                and r.reservation_date == reservation_date
                and r.start_time < end_time
                and r.end_time > start_time
                and r.id != exclude_id
            ),
            key=lambda r: (r.start_time, r.id),
        )

    async def count_in_range(self, person_id: int, date_start: date, date_end: date) -> int:
        await asyncio.sleep(0)
        return sum(
            1
            for r in self.store.reservations.values()
            if r.person_id == person_id and date_start <= r.reservation_date <= date_end
        )

    async def create(
        self,
        *,
        person: Person,
        space: Space,
        reservation_date: date,
        start_time: time,
        end_time: time,
    ) -> Reservation:
        await asyncio.sleep(0)
        return self.store.add_reservation(person, space, reservation_date, start_time, end_time)

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
        await asyncio.sleep(0)
        reservation.person = person
        reservation.person_id = person.id
        reservation.space = space
        reservation.space_id = space.id
        reservation.reservation_date = reservation_date
        reservation.start_time = start_time
        reservation.end_time = end_time
        return reservation

    async def _lock_ids(self, ids: list[int]) -> list[int]:
        for rid in sorted(ids):
            await self.txn.lock("reservation", rid)
        return sorted(ids)

    async def lock_for_person(self, person_id: int) -> list[int]:
        return await self._lock_ids([r.id for r in self.store.reservations.values() if r.person_id == person_id])

    async def lock_for_space(self, space_id: int) -> list[int]:
        return await self._lock_ids([r.id for r in self.store.reservations.values() if r.space_id == space_id])

    async def delete(self, reservation_id: int) -> int:
        await asyncio.sleep(0)
        return 1 if self.store.reservations.pop(reservation_id, None) is not None else 0

    async def list_all(self, page: int, page_size: int) -> tuple[list[Reservation], int]:
        rows = sorted(self.store.reservations.values(), key=lambda r: (r.reservation_date, r.start_time, r.id))
        start = (page - 1) * page_size
        return rows[start : start + page_size], len(rows)

    async def list_for_person(self, person_id: int, page: int, page_size: int) -> tuple[list[Reservation], int]:
        rows = [r for r in self.store.reservations.values() if r.person_id == person_id]
        rows.sort(key=lambda r: (r.start_time, r.id))
        rows.sort(key=lambda r: r.reservation_date, reverse=True)
        start = (page - 1) * page_size
        return rows[start : start + page_size], len(rows)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()
