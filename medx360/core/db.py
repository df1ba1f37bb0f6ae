from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine
from sqlalchemy import text
from .config import Settings
from .base import Base

def build_engine(settings: Settings) -> AsyncEngine:
    if settings.DATABASE_DSN.startswith("sqlite"):
        return create_async_engine(settings.DATABASE_DSN)
    return create_async_engine(settings.DATABASE_DSN, pool_pre_ping=True, pool_timeout=settings.STORE_TIMEOUT_SECONDS)

def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

async def init_models(engine: AsyncEngine, settings: Settings):
    ## In dev-only "create_all" mode create tables directly; otherwise, migrations own the schema.
    if settings.DB_MANAGE == "create_all":
        # register tables on Base.metadata
        from medx360.modules.schedules import models as _schedules  # noqa: F401
        from medx360.modules.bookings import models as _bookings  # noqa: F401
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

async def advisory_xact_lock(s: AsyncSession, key: str) -> None:
    """Serialize writers on `key` until the transaction ends (PostgreSQL only)."""
    if s.bind.dialect.name == "postgresql":
        await s.execute(text("SELECT pg_advisory_xact_lock(hashtext(:k))"), {"k": key})
