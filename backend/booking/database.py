from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from .config import get_settings
from .models import Base

settings = get_settings()

# Admission locks person and space rows, so every read after the locks must
# see the latest committed rows rather than a transaction-start snapshot.
engine = create_async_engine(
    settings.database_url,
    echo=settings.echo_sql,
    isolation_level=settings.isolation_level,
    pool_pre_ping=True,
    pool_recycle=3600,
)

async_session = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def create_schema() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
