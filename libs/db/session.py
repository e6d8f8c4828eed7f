from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from libs.common.config import get_settings
from libs.db.config import AsyncSessionLocal


async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that yields an async database session.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def apply_lock_timeout(db: AsyncSession) -> None:
    """Bound row-lock waits for the rest of the current transaction.

    Only PostgreSQL understands ``lock_timeout``; SQLite bounds the wait with
    the connection's busy timeout instead.
    """
    if db.get_bind().dialect.name != "postgresql":
        return
    timeout_ms = int(get_settings().DB_LOCK_TIMEOUT_MS)
    await db.execute(text(f"SET LOCAL lock_timeout = '{timeout_ms}ms'"))
