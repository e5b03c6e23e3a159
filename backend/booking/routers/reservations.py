from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..deps import get_current_user_email, get_session
from ..domain.errors import ReservationError
from ..infrastructure.repositories import (
    SqlAlchemyPersonRepository,
    SqlAlchemyReservationRepository,
    SqlAlchemySpaceRepository,
)
from ..infrastructure.transactions import run_in_transaction
from ..models import Reservation
from ..schemas import ReservationCreate, ReservationPage, ReservationRead, ReservationUpdate
from ..usecases import reservations as reservation_usecase
from ..utils.audit_log import AuditAction, emit_audit_log
from .errors import to_http_exception

router = APIRouter(prefix="", tags=["reservations"])


def _audit(action: AuditAction, reservation: Reservation, **extra: object) -> None:
    try:
        emit_audit_log(
            action=action,
            reservation_id=reservation.id,
            person_id=reservation.person_id,
            space_id=reservation.space_id,
            reservation_date=reservation.reservation_date,
            start_time=reservation.start_time,
            end_time=reservation.end_time,
            extra=dict(extra) or None,
        )
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed") from exc


@router.post("/reservations", response_model=ReservationRead, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    payload: ReservationCreate,
    session: AsyncSession = Depends(get_session),
) -> ReservationRead:
    person_repo = SqlAlchemyPersonRepository(session)
    space_repo = SqlAlchemySpaceRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        reservation = await run_in_transaction(
            session,
            lambda: reservation_usecase.create_reservation(
                person_repo,
                space_repo,
                res_repo,
                request=payload.to_input(),
            ),
            attempts=get_settings().admission_max_attempts,
        )
    except ReservationError as exc:
        raise to_http_exception(exc) from exc

    _audit("reservation.created", reservation)
    return ReservationRead.from_db(reservation=reservation)


@router.get("/reservations", response_model=ReservationPage)
async def list_reservations(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
) -> ReservationPage:
    res_repo = SqlAlchemyReservationRepository(session)
    result = await reservation_usecase.list_reservations(res_repo, page=page, page_size=page_size)
    return ReservationPage.from_page(result)


@router.get("/me/reservations", response_model=ReservationPage)
async def list_my_reservations(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
    email: str = Depends(get_current_user_email),
) -> ReservationPage:
    person_repo = SqlAlchemyPersonRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        result = await reservation_usecase.list_user_reservations(
            person_repo,
            res_repo,
            email=email,
            page=page,
            page_size=page_size,
        )
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    return ReservationPage.from_page(result)


@router.get("/reservations/{reservation_id}", response_model=ReservationRead)
async def get_reservation(
    reservation_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> ReservationRead:
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        reservation = await reservation_usecase.get_reservation(res_repo, reservation_id=reservation_id)
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    return ReservationRead.from_db(reservation=reservation)


@router.put("/reservations/{reservation_id}", response_model=ReservationRead)
async def update_reservation(
    payload: ReservationUpdate,
    reservation_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> ReservationRead:
    person_repo = SqlAlchemyPersonRepository(session)
    space_repo = SqlAlchemySpaceRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        reservation = await run_in_transaction(
            session,
            lambda: reservation_usecase.update_reservation(
                person_repo,
                space_repo,
                res_repo,
                reservation_id=reservation_id,
                request=payload.to_input(),
            ),
            attempts=get_settings().admission_max_attempts,
        )
    except ReservationError as exc:
        raise to_http_exception(exc) from exc

    _audit("reservation.updated", reservation, changed=sorted(payload.model_dump(exclude_none=True)))
    return ReservationRead.from_db(reservation=reservation)


@router.delete("/reservations/{reservation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reservation(
    reservation_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> Response:
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        await run_in_transaction(
            session,
            lambda: reservation_usecase.delete_reservation(res_repo, reservation_id=reservation_id),
        )
    except ReservationError as exc:
        raise to_http_exception(exc) from exc

    try:
        emit_audit_log(action="reservation.deleted", reservation_id=reservation_id, person_id=None, space_id=None)
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed") from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
