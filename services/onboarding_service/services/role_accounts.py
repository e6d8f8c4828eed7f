"""Per-user roles and their numbered accounts.

A ``UserRole`` and its ``UserAccount`` are always created together and only
ever soft-deactivated. The partial unique index ``uq_user_roles_active_scope``
backs the one-active-role-per-(user, role, club) rule; the explicit check
below exists to return a readable error before the index fires.

Functions that only add rows (``create_role_and_account``) run inside the
caller's transaction and never commit. ``deactivate_role`` and
``set_primary_role`` are self-contained units of work and commit.
"""

from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.errors import ConflictError, NotFoundError
from libs.common.logging import get_logger
from libs.db.session import apply_lock_timeout
from services.onboarding_service.models import (
    Club,
    RoleKind,
    User,
    UserAccount,
    UserRole,
)
from services.onboarding_service.schemas import AccountSummary
from services.onboarding_service.services.account_numbers import allocate_account
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def lock_user(db: AsyncSession, user_id: int) -> User:
    """Load the user row under ``FOR UPDATE``.

    Serializes every role mutation for one user so the duplicate-role and
    one-club-per-manager checks cannot race.
    """
    await apply_lock_timeout(db)
    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User not found", error_code="USER_NOT_FOUND")
    return user


def _scope(query, *, user_id: int, role: RoleKind, club_id: Optional[int]):
    query = query.where(UserRole.user_id == user_id, UserRole.role == role)
    if club_id is None:
        return query.where(UserRole.club_id.is_(None))
    return query.where(UserRole.club_id == club_id)


async def get_active_role(
    db: AsyncSession,
    *,
    user_id: int,
    role: RoleKind,
    club_id: Optional[int] = None,
) -> Optional[UserRole]:
    query = _scope(select(UserRole), user_id=user_id, role=role, club_id=club_id)
    result = await db.execute(query.where(UserRole.is_active.is_(True)))
    return result.scalar_one_or_none()


async def has_active_role_kind(db: AsyncSession, *, user_id: int, role: RoleKind) -> bool:
    """Any active role of this kind, at any club."""
    role_id = await db.scalar(
        select(UserRole.id)
        .where(
            UserRole.user_id == user_id,
            UserRole.role == role,
            UserRole.is_active.is_(True),
        )
        .limit(1)
    )
    return role_id is not None


async def list_roles(
    db: AsyncSession, user_id: int, *, include_inactive: bool = False
) -> list[UserRole]:
    query = select(UserRole).where(UserRole.user_id == user_id)
    if not include_inactive:
        query = query.where(UserRole.is_active.is_(True))
    result = await db.execute(query.order_by(UserRole.created_at, UserRole.id))
    return list(result.scalars().all())


async def list_account_summaries(
    db: AsyncSession, user_id: int, *, include_inactive: bool = False
) -> list[AccountSummary]:
    """Accounts for a user with their club names, oldest first."""
    query = (
        select(UserAccount, Club.name)
        .outerjoin(Club, Club.id == UserAccount.club_id)
        .where(UserAccount.user_id == user_id)
    )
    if not include_inactive:
        query = query.where(UserAccount.is_active.is_(True))
    query = query.order_by(UserAccount.created_at, UserAccount.id)

    rows = (await db.execute(query)).all()
    return [
        AccountSummary(
            account_number=account.account_number,
            role=account.role,
            club_id=account.club_id,
            club_name=club_name,
            is_active=account.is_active,
            onboarding_completed_at=account.onboarding_completed_at,
            created_at=account.created_at,
        )
        for account, club_name in rows
    ]


# ---------------------------------------------------------------------------
# Creation (joins the caller's transaction)
# ---------------------------------------------------------------------------


async def create_role_and_account(
    db: AsyncSession,
    *,
    user: User,
    role: RoleKind,
    club_id: Optional[int] = None,
    position: Optional[str] = None,
    parent_phone: Optional[str] = None,
) -> tuple[UserRole, UserAccount]:
    """Create a role and its numbered account. Does not commit.

    The caller must hold the lock from ``lock_user``.

    Raises:
        ConflictError: an active role already exists for (user, role, club),
            or the user already manages a club.
        AccountNumberExhaustedError: no unique account number could be drawn.
    """
    if await get_active_role(db, user_id=user.id, role=role, club_id=club_id):
        raise ConflictError(
            f"User already has an active {role.value} role"
            + (f" for club {club_id}" if club_id is not None else ""),
            error_code="DUPLICATE_ROLE",
        )

    if role == RoleKind.CLUB_MANAGER and await has_active_role_kind(
        db, user_id=user.id, role=RoleKind.CLUB_MANAGER
    ):
        raise ConflictError(
            "User already manages a club", error_code="CLUB_ALREADY_EXISTS"
        )

    user_role = UserRole(user_id=user.id, role=role, club_id=club_id, is_active=True)
    try:
        async with db.begin_nested():
            db.add(user_role)
            await db.flush()
    except IntegrityError as exc:
        # Partial unique index raced us
        raise ConflictError(
            f"User already has an active {role.value} role",
            error_code="DUPLICATE_ROLE",
        ) from exc

    now = utc_now()
    account = await allocate_account(
        db,
        lambda number: UserAccount(
            user_role_id=user_role.id,
            user_id=user.id,
            account_number=number,
            role=role,
            club_id=club_id,
            position=position,
            parent_phone=parent_phone,
            is_active=True,
            onboarding_completed_at=now,
        ),
    )

    logger.info(
        "Created %s role for user %s with account %s",
        role.value,
        user.id,
        account.account_number,
        extra={
            "extra_fields": {
                "user_id": user.id,
                "role": role.value,
                "club_id": club_id,
                "account_number": account.account_number,
            }
        },
    )
    return user_role, account


# ---------------------------------------------------------------------------
# Self-contained mutations (commit)
# ---------------------------------------------------------------------------


async def deactivate_role(
    db: AsyncSession,
    *,
    user_id: int,
    role: RoleKind,
    club_id: Optional[int] = None,
) -> tuple[int, Optional[RoleKind]]:
    """Soft-deactivate the matching roles and their accounts.

    Without ``club_id`` every active role of this kind is deactivated, at
    whichever clubs the user holds it; with ``club_id`` only that club's role.

    Idempotent: deactivating a role that is already inactive, or that never
    existed, changes nothing and returns ``0``. If no active role of this
    kind remains and it was the primary role, the primary role is cleared;
    another role is never promoted implicitly.

    Returns ``(deactivated_count, primary_role_after)``.
    """
    try:
        user = await lock_user(db, user_id)

        query = select(UserRole).where(
            UserRole.user_id == user_id,
            UserRole.role == role,
            UserRole.is_active.is_(True),
        )
        if club_id is not None:
            query = query.where(UserRole.club_id == club_id)
        user_roles = list((await db.scalars(query)).all())

        if not user_roles:
            primary_role = user.primary_role
            # Nothing changed; committing only releases the user row lock
            await db.commit()
            logger.info(
                "No active %s role to deactivate for user %s (club=%s)",
                role.value,
                user_id,
                club_id,
            )
            return 0, primary_role

        now = utc_now()
        for user_role in user_roles:
            user_role.is_active = False
            user_role.deactivated_at = now
        await db.execute(
            update(UserAccount)
            .where(
                UserAccount.user_role_id.in_([r.id for r in user_roles]),
                UserAccount.is_active.is_(True),
            )
            .values(is_active=False, deactivated_at=now, updated_at=now)
        )
        await db.flush()

        if user.primary_role == role and not await has_active_role_kind(
            db, user_id=user_id, role=role
        ):
            user.primary_role = None

        primary_after = user.primary_role
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Deactivated %d %s role(s) for user %s (club=%s)",
        len(user_roles),
        role.value,
        user_id,
        club_id,
        extra={"extra_fields": {"user_id": user_id, "role": role.value}},
    )
    return len(user_roles), primary_after


async def set_primary_role(db: AsyncSession, *, user_id: int, role: RoleKind) -> User:
    """Make ``role`` the user's primary role.

    Raises:
        NotFoundError: the user holds no active role of that kind.
    """
    try:
        user = await lock_user(db, user_id)
        if not await has_active_role_kind(db, user_id=user_id, role=role):
            raise NotFoundError(
                f"User has no active {role.value} role", error_code="ROLE_NOT_FOUND"
            )
        user.primary_role = role
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("User %s primary role set to %s", user_id, role.value)
    return user
