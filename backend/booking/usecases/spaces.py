from typing import Optional

from ..domain.errors import NotFoundError
from ..domain.repositories import ReservationRepository, SpaceRepository
from ..models import Space


def _checked_text(value: str, label: str) -> str:
    cleaned = value.strip()
    if not cleaned:
        raise ValueError(f"Space {label} is required and cannot be empty")
    return cleaned


def _checked_capacity(capacity: int) -> int:
    if capacity < 1:
        raise ValueError("capacity must be >= 1")
    return capacity


def _clean_description(description: Optional[str]) -> Optional[str]:
    if description is None:
        return None
    return description.strip() or None


async def create_space(
    space_repo: SpaceRepository,
    *,
    name: str,
    location: str,
    capacity: int,
    description: str | None = None,
) -> Space:
    return await space_repo.create(
        name=_checked_text(name, "name"),
        location=_checked_text(location, "location"),
        capacity=_checked_capacity(capacity),
        description=_clean_description(description),
    )


async def update_space(
    space_repo: SpaceRepository,
    *,
    space_id: int,
    name: Optional[str] = None,
    location: Optional[str] = None,
    capacity: Optional[int] = None,
    description: Optional[str] = None,
) -> Space:
    """
    Apply the supplied fields onto the space; ``None`` leaves a field as it is.
    A blank description clears it.
    """
    new_name = _checked_text(name, "name") if name is not None else None
    new_location = _checked_text(location, "location") if location is not None else None
    new_capacity = _checked_capacity(capacity) if capacity is not None else None

    space = await space_repo.get_for_update(space_id)
    if space is None:
        raise NotFoundError("Space")
    return await space_repo.update(
        space,
        name=new_name if new_name is not None else space.name,
        location=new_location if new_location is not None else space.location,
        capacity=new_capacity if new_capacity is not None else space.capacity,
        description=_clean_description(description) if description is not None else space.description,
    )


async def get_space(space_repo: SpaceRepository, *, space_id: int) -> Space:
    space = await space_repo.get(space_id)
    if space is None:
        raise NotFoundError("Space")
    return space


async def list_spaces(space_repo: SpaceRepository) -> list[Space]:
    return await space_repo.list_all()


async def delete_space(space_repo: SpaceRepository, res_repo: ReservationRepository, *, space_id: int) -> None:
    await res_repo.lock_for_space(space_id)
    if await space_repo.get_for_update(space_id) is None:
        raise NotFoundError("Space")
    await space_repo.delete(space_id)
