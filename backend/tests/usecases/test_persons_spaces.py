import asyncio
from datetime import date, time

import pytest
from booking.domain.errors import DuplicateEmailError, NotFoundError
from booking.domain.services import ReservationInput
from booking.models import PersonRole
from booking.usecases import persons as person_uc
from booking.usecases import reservations as reservation_uc
from booking.usecases import spaces as space_uc


@pytest.mark.asyncio
async def test_create_person_normalizes_email(store) -> None:
    async with store.transaction() as tx:
        person = await person_uc.create_person(tx.persons, email="  Client@Workspace.COM ", role=PersonRole.CLIENT)
    assert person.email == "client@workspace.com"
    assert person.role == PersonRole.CLIENT


@pytest.mark.asyncio
async def test_create_person_rejects_duplicate_email_in_any_case(store) -> None:
    store.add_person("client@workspace.com")
    async with store.transaction() as tx:
        with pytest.raises(DuplicateEmailError):
            await person_uc.create_person(tx.persons, email="CLIENT@workspace.com", role=PersonRole.ADMIN)


@pytest.mark.parametrize("email", ["not-an-email", "a@b", "a b@example.com", "@example.com", "a@@example.com"])
@pytest.mark.asyncio
async def test_create_person_rejects_invalid_email_format(store, email: str) -> None:
    async with store.transaction() as tx:
        with pytest.raises(ValueError, match="Invalid email format"):
            await person_uc.create_person(tx.persons, email=email, role=PersonRole.CLIENT)
    assert store.persons == {}


@pytest.mark.asyncio
async def test_create_person_rejects_unknown_role(store) -> None:
    async with store.transaction() as tx:
        with pytest.raises(ValueError, match="Role must be"):
            await person_uc.create_person(tx.persons, email="a@example.com", role="owner")


@pytest.mark.asyncio
async def test_update_person_renormalizes_email_and_changes_role(store) -> None:
    person = store.add_person("old@example.com")
    async with store.transaction() as tx:
        updated = await person_uc.update_person(
            tx.persons, person_id=person.id, email="  New@Example.COM", role="admin"
        )
    assert updated.id == person.id
    assert updated.email == "new@example.com"
    assert updated.role == PersonRole.ADMIN


@pytest.mark.asyncio
async def test_update_person_keeps_unsupplied_fields(store) -> None:
    person = store.add_person("keep@example.com", PersonRole.ADMIN)
    async with store.transaction() as tx:
        updated = await person_uc.update_person(tx.persons, person_id=person.id, role=PersonRole.CLIENT)
    assert updated.email == "keep@example.com"
    assert updated.role == PersonRole.CLIENT


@pytest.mark.asyncio
async def test_update_person_allows_own_email_in_other_case(store) -> None:
    person = store.add_person("me@example.com")
    async with store.transaction() as tx:
        updated = await person_uc.update_person(tx.persons, person_id=person.id, email="ME@example.com")
    assert updated.email == "me@example.com"


@pytest.mark.asyncio
async def test_update_person_rejects_email_of_someone_else(store) -> None:
    store.add_person("taken@example.com")
    person = store.add_person("me@example.com")
    async with store.transaction() as tx:
        with pytest.raises(DuplicateEmailError):
            await person_uc.update_person(tx.persons, person_id=person.id, email="Taken@example.com")
    assert person.email == "me@example.com"


@pytest.mark.asyncio
async def test_update_person_validates_before_lookup(store) -> None:
    async with store.transaction() as tx:
        with pytest.raises(ValueError, match="Invalid email format"):
            await person_uc.update_person(tx.persons, person_id=999, email="broken")
        with pytest.raises(ValueError, match="Role must be"):
            await person_uc.update_person(tx.persons, person_id=999, role="owner")
        with pytest.raises(NotFoundError) as excinfo:
            await person_uc.update_person(tx.persons, person_id=999, role="client")
    assert excinfo.value.kind == "Person"


@pytest.mark.asyncio
async def test_person_listing_and_lookup(store) -> None:
    client = store.add_person("client@workspace.com")
    admin = store.add_person("admin@workspace.com", PersonRole.ADMIN)
    async with store.transaction() as tx:
        assert [p.id for p in await person_uc.list_persons(tx.persons)] == [client.id, admin.id]
        assert await person_uc.list_persons_by_role(tx.persons, role="admin") == [admin]
        assert await person_uc.list_persons_by_role(tx.persons, role=PersonRole.CLIENT) == [client]
        found = await person_uc.get_person_by_email(tx.persons, email=" Admin@Workspace.com ")
        assert found is admin
        with pytest.raises(NotFoundError):
            await person_uc.get_person_by_email(tx.persons, email="ghost@workspace.com")
        with pytest.raises(ValueError, match="Invalid email format"):
            await person_uc.get_person_by_email(tx.persons, email="ghost")
        with pytest.raises(ValueError, match="Role must be"):
            await person_uc.list_persons_by_role(tx.persons, role="guest")


@pytest.mark.asyncio
async def test_delete_person_cascades_to_reservations(store) -> None:
    person = store.add_person("a@example.com")
    space = store.add_space()
    store.add_reservation(person, space, date(2030, 1, 8), time(9, 0), time(10, 0))

    async with store.transaction() as tx:
        await person_uc.delete_person(tx.persons, tx.reservations, person_id=person.id)
        with pytest.raises(NotFoundError):
            await person_uc.get_person(tx.persons, person_id=person.id)
    assert store.reservations == {}


@pytest.mark.asyncio
async def test_delete_unknown_person_is_not_found(store) -> None:
    async with store.transaction() as tx:
        with pytest.raises(NotFoundError) as excinfo:
            await person_uc.delete_person(tx.persons, tx.reservations, person_id=404)
    assert excinfo.value.kind == "Person"


@pytest.mark.asyncio
async def test_person_delete_and_reservation_update_do_not_deadlock(store) -> None:
    person = store.add_person("a@example.com")
    space = store.add_space()
    reservation = store.add_reservation(person, space, date(2030, 1, 8), time(10, 0), time(11, 0))

    async def update() -> None:
        async with store.transaction() as tx:
            await reservation_uc.update_reservation(
                tx.persons,
                tx.spaces,
                tx.reservations,
                reservation_id=reservation.id,
                request=ReservationInput(end_time="11:30"),
                today=date(2030, 1, 2),
            )

    async def remove() -> None:
        async with store.transaction() as tx:
            await person_uc.delete_person(tx.persons, tx.reservations, person_id=person.id)

    await asyncio.wait_for(asyncio.gather(update(), remove()), timeout=2)

    assert reservation.end_time == time(11, 30)
    assert store.persons == {}
    assert store.reservations == {}


@pytest.mark.asyncio
async def test_create_space_rejects_capacity_below_one(store) -> None:
    async with store.transaction() as tx:
        with pytest.raises(ValueError):
            await space_uc.create_space(tx.spaces, name="Room", location="Floor 1", capacity=0)


@pytest.mark.asyncio
async def test_create_space_trims_text_fields(store) -> None:
    async with store.transaction() as tx:
        space = await space_uc.create_space(
            tx.spaces, name=" Room A ", location=" Floor 2 ", capacity=4, description="   "
        )
    assert (space.name, space.location, space.description) == ("Room A", "Floor 2", None)


@pytest.mark.asyncio
async def test_space_lifecycle(store) -> None:
    async with store.transaction() as tx:
        space = await space_uc.create_space(
            tx.spaces, name="Room", location="Floor 1", capacity=12, description="Corner room"
        )
        assert (await space_uc.get_space(tx.spaces, space_id=space.id)).description == "Corner room"
        await space_uc.delete_space(tx.spaces, tx.reservations, space_id=space.id)
        with pytest.raises(NotFoundError) as excinfo:
            await space_uc.delete_space(tx.spaces, tx.reservations, space_id=space.id)
    assert excinfo.value.kind == "Space"


@pytest.mark.asyncio
async def test_delete_space_cascades_to_reservations(store) -> None:
    person = store.add_person("a@example.com")
    space = store.add_space()
    other = store.add_space(name="Other")
    store.add_reservation(person, space, date(2030, 1, 8), time(9, 0), time(10, 0))
    kept = store.add_reservation(person, other, date(2030, 1, 8), time(9, 0), time(10, 0))

    async with store.transaction() as tx:
        await space_uc.delete_space(tx.spaces, tx.reservations, space_id=space.id)
    assert list(store.reservations.values()) == [kept]


@pytest.mark.asyncio
async def test_update_space_applies_supplied_fields_only(store) -> None:
    space = store.add_space(name="Room", capacity=12, location="Floor 1")
    space.description = "Corner room"
    async with store.transaction() as tx:
        updated = await space_uc.update_space(tx.spaces, space_id=space.id, name=" Big Room ", capacity=20)
    assert updated.name == "Big Room"
    assert updated.capacity == 20
    assert updated.location == "Floor 1"
    assert updated.description == "Corner room"


@pytest.mark.asyncio
async def test_update_space_blank_description_clears_it(store) -> None:
    space = store.add_space()
    space.description = "Corner room"
    async with store.transaction() as tx:
        updated = await space_uc.update_space(tx.spaces, space_id=space.id, description="  ")
    assert updated.description is None


@pytest.mark.parametrize(
    "changes",
    [{"name": "  "}, {"location": ""}, {"capacity": 0}, {"capacity": -3}],
)
@pytest.mark.asyncio
async def test_update_space_rejects_invalid_values(store, changes: dict) -> None:
    space = store.add_space()
    async with store.transaction() as tx:
        with pytest.raises(ValueError):
            await space_uc.update_space(tx.spaces, space_id=space.id, **changes)
    assert (space.name, space.location, space.capacity) == ("Room", "Floor 1", 12)


@pytest.mark.asyncio
async def test_update_unknown_space_is_not_found(store) -> None:
    async with store.transaction() as tx:
        with pytest.raises(NotFoundError) as excinfo:
            await space_uc.update_space(tx.spaces, space_id=404, capacity=5)
    assert excinfo.value.kind == "Space"


@pytest.mark.asyncio
async def test_list_spaces_in_id_order(store) -> None:
    first = store.add_space(name="B")
    second = store.add_space(name="A")
    async with store.transaction() as tx:
        assert await space_uc.list_spaces(tx.spaces) == [first, second]
