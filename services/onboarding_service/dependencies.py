"""Request dependencies shared by the onboarding routers."""

from fastapi import Depends, Request
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.onboarding_service.models import User
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


async def get_or_create_user(db: AsyncSession, auth_user: AuthUser) -> User:
    """Resolve the token subject to a platform user, creating it on first sight."""
    result = await db.execute(select(User).where(User.auth_id == auth_user.user_id))
    user = result.scalar_one_or_none()
    if user is not None:
        return user

    user = User(auth_id=auth_user.user_id, email=auth_user.email)
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Another request created it first
        await db.rollback()
        result = await db.execute(
            select(User).where(User.auth_id == auth_user.user_id)
        )
        return result.scalar_one()

    logger.info("Created platform user %s for auth id %s", user.id, auth_user.user_id)
    return user


async def get_current_platform_user(
    request: Request,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
) -> User:
    request.state.user = current_user
    return await get_or_create_user(db, current_user)
