from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_session
from ..domain.errors import ReservationError
from ..infrastructure.repositories import SqlAlchemyPersonRepository, SqlAlchemyReservationRepository
from ..infrastructure.transactions import run_in_transaction
from ..schemas import PersonCreate, PersonRead, PersonUpdate
from ..usecases import persons as person_usecase
from .errors import to_http_exception

router = APIRouter(prefix="/persons", tags=["persons"])


@router.post("", response_model=PersonRead, status_code=status.HTTP_201_CREATED)
async def create_person(
    payload: PersonCreate,
    session: AsyncSession = Depends(get_session),
) -> PersonRead:
    person_repo = SqlAlchemyPersonRepository(session)
    try:
        person = await run_in_transaction(
            session,
            lambda: person_usecase.create_person(person_repo, email=payload.email, role=payload.role),
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    return PersonRead.from_db(person=person)


@router.get("", response_model=list[PersonRead])
async def list_persons(session: AsyncSession = Depends(get_session)) -> list[PersonRead]:
    persons = await person_usecase.list_persons(SqlAlchemyPersonRepository(session))
    return [PersonRead.from_db(person=p) for p in persons]


# Declared before /{person_id} so the literal paths win.
@router.get("/search", response_model=PersonRead)
async def get_person_by_email(
    email: str = Query(..., min_length=1),
    session: AsyncSession = Depends(get_session),
) -> PersonRead:
    person_repo = SqlAlchemyPersonRepository(session)
    try:
        person = await person_usecase.get_person_by_email(person_repo, email=email)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    return PersonRead.from_db(person=person)


@router.get("/role/{role}", response_model=list[PersonRead])
async def list_persons_by_role(
    role: str,
    session: AsyncSession = Depends(get_session),
) -> list[PersonRead]:
    person_repo = SqlAlchemyPersonRepository(session)
    try:
        persons = await person_usecase.list_persons_by_role(person_repo, role=role)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return [PersonRead.from_db(person=p) for p in persons]


@router.get("/{person_id}", response_model=PersonRead)
async def get_person(
    person_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> PersonRead:
    person_repo = SqlAlchemyPersonRepository(session)
    try:
        person = await person_usecase.get_person(person_repo, person_id=person_id)
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    return PersonRead.from_db(person=person)


@router.put("/{person_id}", response_model=PersonRead)
async def update_person(
    payload: PersonUpdate,
    person_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> PersonRead:
    person_repo = SqlAlchemyPersonRepository(session)
    try:
        person = await run_in_transaction(
            session,
            lambda: person_usecase.update_person(
                person_repo, person_id=person_id, email=payload.email, role=payload.role
            ),
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    return PersonRead.from_db(person=person)


@router.delete("/{person_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_person(
    person_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> Response:
    person_repo = SqlAlchemyPersonRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        await run_in_transaction(
            session, lambda: person_usecase.delete_person(person_repo, res_repo, person_id=person_id)
        )
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
