from fastapi import APIRouter, Depends, HTTPException, Path, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_session
from ..domain.errors import ReservationError
from ..infrastructure.repositories import SqlAlchemyReservationRepository, SqlAlchemySpaceRepository
from ..infrastructure.transactions import run_in_transaction
from ..schemas import SpaceCreate, SpaceRead, SpaceUpdate
from ..usecases import spaces as space_usecase
from .errors import to_http_exception

router = APIRouter(prefix="/spaces", tags=["spaces"])


@router.post("", response_model=SpaceRead, status_code=status.HTTP_201_CREATED)
async def create_space(
    payload: SpaceCreate,
    session: AsyncSession = Depends(get_session),
) -> SpaceRead:
    space_repo = SqlAlchemySpaceRepository(session)
    try:
        space = await run_in_transaction(
            session,
            lambda: space_usecase.create_space(
                space_repo,
                name=payload.name,
                location=payload.location,
                capacity=payload.capacity,
                description=payload.description,
            ),
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    return SpaceRead.from_db(space=space)


@router.get("", response_model=list[SpaceRead])
async def list_spaces(session: AsyncSession = Depends(get_session)) -> list[SpaceRead]:
    spaces = await space_usecase.list_spaces(SqlAlchemySpaceRepository(session))
    return [SpaceRead.from_db(space=s) for s in spaces]


@router.get("/{space_id}", response_model=SpaceRead)
async def get_space(
    space_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> SpaceRead:
    space_repo = SqlAlchemySpaceRepository(session)
    try:
        space = await space_usecase.get_space(space_repo, space_id=space_id)
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    return SpaceRead.from_db(space=space)


@router.put("/{space_id}", response_model=SpaceRead)
async def update_space(
    payload: SpaceUpdate,
    space_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> SpaceRead:
    space_repo = SqlAlchemySpaceRepository(session)
    try:
        space = await run_in_transaction(
            session,
            lambda: space_usecase.update_space(
                space_repo,
                space_id=space_id,
                name=payload.name,
                location=payload.location,
                capacity=payload.capacity,
                description=payload.description,
            ),
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    return SpaceRead.from_db(space=space)


@router.delete("/{space_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_space(
    space_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> Response:
    space_repo = SqlAlchemySpaceRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        await run_in_transaction(session, lambda: space_usecase.delete_space(space_repo, res_repo, space_id=space_id))
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
