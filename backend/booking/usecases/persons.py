import re
from typing import Optional

from ..domain.errors import DuplicateEmailError, NotFoundError
from ..domain.repositories import PersonRepository, ReservationRepository
from ..models import Person, PersonRole

_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _checked_email(email: str) -> str:
    normalized = normalize_email(email)
    if not normalized:
        raise ValueError("email must not be empty")
    if not _EMAIL_RE.fullmatch(normalized):
        raise ValueError("Invalid email format")
    return normalized


def _checked_role(role: PersonRole | str) -> PersonRole:
    try:
        return PersonRole(role)
    except ValueError as exc:
        raise ValueError('Role must be either "admin" or "client"') from exc


async def create_person(person_repo: PersonRepository, *, email: str, role: PersonRole | str) -> Person:
    normalized = _checked_email(email)
    checked_role = _checked_role(role)
    if await person_repo.get_by_email(normalized) is not None:
        raise DuplicateEmailError("email already registered")
    return await person_repo.create(email=normalized, role=checked_role)


async def update_person(
    person_repo: PersonRepository,
    *,
    person_id: int,
    email: Optional[str] = None,
    role: PersonRole | str | None = None,
) -> Person:
    """Change email and/or role; a new email is normalized and must stay unique."""
    new_email = _checked_email(email) if email is not None else None
    new_role = _checked_role(role) if role is not None else None

    person = await person_repo.get_for_update(person_id)
    if person is None:
        raise NotFoundError("Person")
    if new_email is not None and new_email != person.email:
        holder = await person_repo.get_by_email(new_email)
        if holder is not None and holder.id != person.id:
            raise DuplicateEmailError("email already registered")
    return await person_repo.update(
        person,
        email=new_email if new_email is not None else person.email,
        role=new_role if new_role is not None else person.role,
    )


async def get_person(person_repo: PersonRepository, *, person_id: int) -> Person:
    person = await person_repo.get(person_id)
    if person is None:
        raise NotFoundError("Person")
    return person


async def get_person_by_email(person_repo: PersonRepository, *, email: str) -> Person:
    person = await person_repo.get_by_email(_checked_email(email))
    if person is None:
        raise NotFoundError("Person")
    return person


async def list_persons(person_repo: PersonRepository) -> list[Person]:
    return await person_repo.list_all()


async def list_persons_by_role(person_repo: PersonRepository, *, role: PersonRole | str) -> list[Person]:
    return await person_repo.list_by_role(_checked_role(role))


async def delete_person(person_repo: PersonRepository, res_repo: ReservationRepository, *, person_id: int) -> None:
    # Same order as an update: reservation rows first, then the person row.
    # The ON DELETE CASCADE key then removes the locked reservations.
    await res_repo.lock_for_person(person_id)
    if await person_repo.get_for_update(person_id) is None:
        raise NotFoundError("Person")
    await person_repo.delete(person_id)
