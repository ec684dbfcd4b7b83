from pathlib import Path
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from digital_forms.config import settings


def configure_sqlite_engine(async_engine: AsyncEngine) -> None:
    """
    Open every SQLite transaction with BEGIN IMMEDIATE.

    The driver's implicit BEGIN is disabled so the write lock is taken when the
    transaction starts. Concurrent writers then queue on the busy timeout
    instead of failing with "database is locked" on lock upgrade.
    """
    @event.listens_for(async_engine.sync_engine, "connect")
    def _disable_implicit_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(async_engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str) -> AsyncEngine:
    """Create the async engine for the configured database."""
    if "sqlite" in database_url:
        # SQLite doesn't support connection pooling the same way
        sqlite_engine = create_async_engine(
            database_url,
            echo=False,
            poolclass=NullPool,
            connect_args={"check_same_thread": False, "timeout": settings.DB_POOL_TIMEOUT},
        )
        configure_sqlite_engine(sqlite_engine)
        return sqlite_engine

    # PostgreSQL with connection pooling
    return create_async_engine(
        database_url,
        echo=False,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
    )


engine = build_engine(settings.DATABASE_URL)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Base class for models
Base = declarative_base()


async def get_db() -> AsyncSession:
    """
    Dependency for getting database session.
    Usage in FastAPI:
        @app.get("/")
        async def endpoint(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """Initialize database (create tables)."""
    # Register the mappers before touching the metadata
    import digital_forms.models  # noqa: F401

    if engine.url.get_backend_name() == "sqlite" and engine.url.database:
        Path(engine.url.database).parent.mkdir(parents=True, exist_ok=True)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()
