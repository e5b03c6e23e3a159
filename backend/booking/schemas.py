from datetime import date, time
from typing import Optional

from pydantic import BaseModel, Field, field_serializer

from .domain.services import Page, ReservationInput
from .models import Person, PersonRole, Reservation, Space


class PersonCreate(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    role: PersonRole = PersonRole.CLIENT


class PersonUpdate(BaseModel):
    email: Optional[str] = Field(default=None, min_length=3, max_length=255)
    role: Optional[PersonRole] = None


class PersonRead(BaseModel):
    id: int
    email: str
    role: PersonRole

    @classmethod
    def from_db(cls, *, person: Person) -> "PersonRead":
        return cls(id=person.id, email=person.email, role=person.role)


class SpaceCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    location: str = Field(min_length=1, max_length=255)
    capacity: int = Field(ge=1)
    description: Optional[str] = None


class SpaceUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    location: Optional[str] = Field(default=None, min_length=1, max_length=255)
    capacity: Optional[int] = Field(default=None, ge=1)
    description: Optional[str] = None


class SpaceRead(BaseModel):
    id: int
    name: str
    location: str
    capacity: int
    description: Optional[str] = None

    @classmethod
    def from_db(cls, *, space: Space) -> "SpaceRead":
        return cls(
            id=space.id,
            name=space.name,
            location=space.location,
            capacity=space.capacity,
            description=space.description,
        )


class ReservationCreate(BaseModel):
    # Date and times stay raw strings; the admission path owns their validation.
    person_id: int = Field(ge=1)
    space_id: int = Field(ge=1)
    reservation_date: str
    start_time: str
    end_time: str

    def to_input(self) -> ReservationInput:
        return ReservationInput(
            person_id=self.person_id,
            space_id=self.space_id,
            reservation_date=self.reservation_date,
            start_time=self.start_time,
            end_time=self.end_time,
        )


class ReservationUpdate(BaseModel):
    person_id: Optional[int] = Field(default=None, ge=1)
    space_id: Optional[int] = Field(default=None, ge=1)
    reservation_date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    def to_input(self) -> ReservationInput:
        return ReservationInput(
            person_id=self.person_id,
            space_id=self.space_id,
            reservation_date=self.reservation_date,
            start_time=self.start_time,
            end_time=self.end_time,
        )


class ReservationPerson(BaseModel):
    id: int
    email: str
    role: PersonRole


class ReservationSpace(BaseModel):
    id: int
    name: str
    location: str
    capacity: int


class ReservationRead(BaseModel):
    reservation_id: int
    person_id: int
    space_id: int
    reservation_date: date
    start_time: time
    end_time: time
    person: ReservationPerson
    space: ReservationSpace

    @field_serializer("start_time", "end_time")
    def _ser_time(self, value: time) -> str:
        return value.strftime("%H:%M")

    @classmethod
    def from_db(cls, *, reservation: Reservation) -> "ReservationRead":
        person = reservation.person
        space = reservation.space
        return cls(
            reservation_id=reservation.id,
            person_id=person.id,
            space_id=space.id,
            reservation_date=reservation.reservation_date,
            start_time=reservation.start_time,
            end_time=reservation.end_time,
            person=ReservationPerson(id=person.id, email=person.email, role=person.role),
            space=ReservationSpace(id=space.id, name=space.name, location=space.location, capacity=space.capacity),
        )


class Pagination(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int


class ReservationPage(BaseModel):
    data: list[ReservationRead]
    pagination: Pagination

    @classmethod
    def from_page(cls, page: Page[Reservation]) -> "ReservationPage":
        return cls(
            data=[ReservationRead.from_db(reservation=r) for r in page.items],
            pagination=Pagination(
                page=page.page,
                page_size=page.page_size,
                total=page.total,
                total_pages=page.total_pages,
            ),
        )
