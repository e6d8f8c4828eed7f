"""Club creation and club-relationship checks."""

from typing import Optional

from libs.common.errors import ConflictError, NotFoundError, UnauthorizedError
from libs.common.logging import get_logger
from services.onboarding_service.models import Club, RoleKind, UserRole
from services.onboarding_service.schemas import ClubManagerPayload, ClubSummary
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


async def get_club(db: AsyncSession, club_id: int) -> Club:
    club = await db.get(Club, club_id)
    if club is None or not club.is_active:
        raise NotFoundError("Club not found", error_code="CLUB_NOT_FOUND")
    return club


async def get_managed_club(db: AsyncSession, user_id: int) -> Optional[Club]:
    """The club this user created, if any. A manager owns at most one."""
    result = await db.execute(
        select(Club).where(Club.created_by == user_id).order_by(Club.id).limit(1)
    )
    return result.scalar_one_or_none()


async def require_club_owner(db: AsyncSession, *, club_id: int, user_id: int) -> Club:
    """Load a club and check that ``user_id`` created it."""
    club = await get_club(db, club_id)
    if club.created_by != user_id:
        logger.warning(
            "User %s attempted a manager action on club %s", user_id, club_id
        )
        raise UnauthorizedError(
            "Only the club manager can perform this action",
            error_code="NOT_CLUB_MANAGER",
        )
    return club


async def create_club(
    db: AsyncSession,
    *,
    created_by: int,
    payload: ClubManagerPayload,
) -> Club:
    """Insert the club for a new manager. Does not commit.

    The caller holds the user row lock, so the existence check and the insert
    cannot interleave with another onboarding for the same user.
    """
    existing = await get_managed_club(db, created_by)
    if existing is not None:
        raise ConflictError(
            "User already manages a club", error_code="CLUB_ALREADY_EXISTS"
        )

    club = Club(
        name=payload.name.strip(),
        club_type=payload.club_type,
        description=payload.description,
        founded_year=payload.founded_year,
        membership_capacity=payload.membership_capacity,
        website=payload.website,
        address=payload.address,
        phone=payload.phone,
        email=str(payload.email) if payload.email else None,
        logo_url=payload.logo_url,
        created_by=created_by,
        is_active=True,
        verified=False,
    )
    db.add(club)
    await db.flush()

    logger.info(
        "Created club %s for manager %s",
        club.id,
        created_by,
        extra={"extra_fields": {"club_id": club.id, "club_type": club.club_type.value}},
    )
    return club


async def count_members(db: AsyncSession, club_id: int) -> int:
    """Active member roles at the club."""
    count = await db.scalar(
        select(func.count(UserRole.id)).where(
            UserRole.club_id == club_id,
            UserRole.role == RoleKind.MEMBER,
            UserRole.is_active.is_(True),
        )
    )
    return count or 0


async def is_user_in_club(db: AsyncSession, *, user_id: int, club_id: int) -> bool:
    """True when the user holds any active role at the club, or created it."""
    role_id = await db.scalar(
        select(UserRole.id)
        .where(
            UserRole.user_id == user_id,
            UserRole.club_id == club_id,
            UserRole.is_active.is_(True),
        )
        .limit(1)
    )
    if role_id is not None:
        return True
    owner = await db.scalar(select(Club.created_by).where(Club.id == club_id))
    return owner == user_id


async def build_club_summary(db: AsyncSession, club: Club) -> ClubSummary:
    return ClubSummary(
        id=club.id,
        name=club.name,
        club_type=club.club_type,
        description=club.description,
        logo_url=club.logo_url,
        member_count=await count_members(db, club.id),
    )
