from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from libs.common.config import get_settings

settings = get_settings()


def _install_sqlite_locking(engine: AsyncEngine) -> None:
    """Make SQLite transactions take the write lock up front.

    pysqlite/aiosqlite normally defer BEGIN until the first write, which lets
    two transactions read the same row and then race to upgrade. BEGIN
    IMMEDIATE serializes writers the way SELECT ... FOR UPDATE does on
    PostgreSQL, and handing BEGIN to SQLAlchemy keeps SAVEPOINT working.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str, **kwargs) -> AsyncEngine:
    """Create an async engine for PostgreSQL (production) or SQLite (local/tests)."""
    if database_url.startswith("sqlite"):
        engine = create_async_engine(
            database_url,
            echo=kwargs.pop("echo", False),
            connect_args={"timeout": settings.DB_LOCK_TIMEOUT_MS / 1000},
            **kwargs,
        )
        _install_sqlite_locking(engine)
        return engine

    return create_async_engine(
        database_url,
        echo=kwargs.pop("echo", settings.ENVIRONMENT == "local"),
        future=True,
        pool_pre_ping=True,  # Test connections before using
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        **kwargs,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


engine = build_engine(settings.DATABASE_URL)

# Create async session factory
AsyncSessionLocal = build_session_factory(engine)
