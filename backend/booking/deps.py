from typing import AsyncIterator

from fastapi import Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from .database import async_session


async def get_session() -> AsyncIterator[AsyncSession]:
    async with async_session() as session:
        yield session


async def get_current_user_email(x_user_email: str | None = Header(default=None)) -> str:
    """Caller identity, already verified upstream and forwarded as a header."""
    if x_user_email is None or not x_user_email.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="X-User-Email header required")
    return x_user_email.strip().lower()
