from sqlalchemy import MetaData, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from loguru import logger

from swipematch.core.config import get_settings

settings = get_settings()


def process_database_url(url: str | None) -> str:
    """Normalize a database URL to an async driver."""
    if not url:
        logger.warning("No database URL provided, falling back to SQLite")
        return "sqlite+aiosqlite:///./swipematch.db"

    if url.startswith("sqlite"):
        if "+aiosqlite" not in url:
            url = url.replace("sqlite", "sqlite+aiosqlite", 1)
        return url

    # Handle the plain postgres:// format most hosting providers hand out
    if url.startswith("postgres://") or url.startswith("postgresql://"):
        if "asyncpg" not in url:
            if url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql+asyncpg://", 1)
            else:
                url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        logger.info(f"Processed database URL (starts with): {url[:22]}...")
        return url

    logger.warning(f"Unrecognized database URL format: {url[:10]}...")
    return url


SQLALCHEMY_DATABASE_URL = process_database_url(settings.db_url)

# Naming convention for constraints
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)


class Base(DeclarativeBase):
    """Base class for all models."""
    metadata = metadata


def create_engine(database_url: str | None = None, echo: bool | None = None) -> AsyncEngine:
    """Create an async engine with settings suited to the target database."""
    url = process_database_url(database_url or SQLALCHEMY_DATABASE_URL)
    engine_kwargs = {
        "echo": settings.debug if echo is None else echo,
        "pool_pre_ping": True,
    }
    if "postgresql" in url:
        engine_kwargs.update(
            pool_recycle=60,
            pool_timeout=120,
            pool_size=3,
            max_overflow=5,
            pool_use_lifo=True,
            connect_args={
                "timeout": 60,
                "command_timeout": 60,
                "server_settings": {"application_name": "swipematch"},
                "statement_cache_size": 0,
            },
        )
    return create_async_engine(url, **engine_kwargs)


engine = create_engine()

# Create async session factory
async_session_factory = async_sessionmaker(
    engine,
    expire_on_commit=False,
    class_=AsyncSession,
)


async def get_session() -> AsyncSession:
    """Get a database session."""
    async with async_session_factory() as session:
        yield session


def get_engine() -> AsyncEngine:
    """Get the SQLAlchemy engine."""
    return engine


async def init_models(target_engine: AsyncEngine | None = None):
    """Create all tables that do not exist yet."""
    # Models must be imported so that their tables are registered on the metadata
    import swipematch.db.models  # noqa: F401

    target_engine = target_engine or engine
    logger.info("Initializing database models...")
    async with target_engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database models initialized successfully")
    return Base.metadata
