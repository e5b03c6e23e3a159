from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.errors import DuplicateEmailError, StoreFailureError

T = TypeVar("T")

logger = logging.getLogger(__name__)

_SLOT_MARKERS = ("uq_reservations_space_date_start", "reservations.space_id")
_EMAIL_MARKERS = ("uq_persons_email", "persons.email")


def is_slot_collision(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return any(marker in message for marker in _SLOT_MARKERS)


def is_duplicate_email(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return any(marker in message for marker in _EMAIL_MARKERS)


async def run_in_transaction(
    session: AsyncSession,
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int = 1,
) -> T:
    """
    Run ``operation`` inside ``session.begin()``.

    A write that loses a race on the (space, date, start) unique key is rolled
    back and the whole operation re-run, so the re-run reports the collision
    the same way a sequential check would. Domain errors pass through
    untouched; other SQLAlchemy errors surface as StoreFailureError.
    """
    attempt = 1
    while True:
        try:
            async with session.begin():
                return await operation()
        except IntegrityError as exc:
            if is_slot_collision(exc) and attempt < attempts:
                logger.warning(
                    "reservation write collided with a concurrent admission, retrying (attempt %d/%d)",
                    attempt + 1,
                    attempts,
                )
                attempt += 1
                continue
            if is_duplicate_email(exc):
                raise DuplicateEmailError("email already registered") from exc
            raise StoreFailureError(f"store rejected the write: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            raise StoreFailureError(f"store failure: {exc}") from exc
