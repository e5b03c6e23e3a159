from fastapi import HTTPException, status

from ..domain.errors import (
    ConflictError,
    DuplicateEmailError,
    NotFoundError,
    QuotaExceededError,
    ReservationError,
    StoreFailureError,
)


def to_http_exception(exc: ReservationError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (ConflictError, QuotaExceededError, DuplicateEmailError)):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, StoreFailureError):
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(exc))
