"""Club invite codes: creation, read-only checks and atomic redemption.

An invite code moves from active to one of three terminal states and never
comes back:

* deactivated - ``is_active`` was cleared by the club manager
* expired     - ``expires_at`` has passed
* exhausted   - ``used_count`` reached ``usage_limit``

Only ``is_active`` is stored; the other two are evaluated on every read.
``validate_invite_code`` and ``preview_invite_code`` never write. The only
path that consumes a use is ``redeem_invite_code``, which re-reads the row
under ``FOR UPDATE`` before checking and incrementing, so concurrent
redemptions of the same code are applied one at a time.
"""

import secrets
from datetime import datetime
from typing import Optional

from libs.common.config import get_settings
from libs.common.datetime_utils import to_utc, utc_now
from libs.common.errors import (
    DeactivatedError,
    ExhaustedError,
    ExpiredError,
    InviteCodeError,
    NotFoundError,
    TransientError,
    UnauthorizedError,
    ValidationError,
)
from libs.common.logging import get_logger
from libs.db.session import apply_lock_timeout
from services.onboarding_service.models import INVITABLE_ROLES, ClubInviteCode, RoleKind
from services.onboarding_service.schemas import (
    InviteCodeCreate,
    InvitePreview,
    InviteValidation,
)
from services.onboarding_service.services.clubs import (
    build_club_summary,
    is_user_in_club,
    require_club_owner,
)
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

# No 0/O or 1/I
INVITE_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def generate_invite_code(length: Optional[int] = None) -> str:
    length = length or get_settings().INVITE_CODE_LENGTH
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(length))


def terminal_state(
    invite: ClubInviteCode, now: Optional[datetime] = None
) -> Optional[InviteCodeError]:
    """Return the error describing why ``invite`` cannot be redeemed, or None.

    Checked in a fixed order: deactivated, then expired, then exhausted.
    """
    now = now or utc_now()
    if not invite.is_active:
        return DeactivatedError()
    if invite.expires_at is not None and to_utc(invite.expires_at) <= now:
        return ExpiredError()
    if invite.usage_limit is not None and invite.used_count >= invite.usage_limit:
        return ExhaustedError()
    return None


def _not_found() -> NotFoundError:
    return NotFoundError("Invite code not found", error_code="INVITE_CODE_NOT_FOUND")


async def get_invite_by_code(
    db: AsyncSession, code: str, *, for_update: bool = False
) -> Optional[ClubInviteCode]:
    query = select(ClubInviteCode).where(ClubInviteCode.code == normalize_code(code))
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Management (club manager)
# ---------------------------------------------------------------------------


async def create_invite_code(
    db: AsyncSession,
    *,
    club_id: int,
    requesting_user_id: int,
    data: InviteCodeCreate,
) -> ClubInviteCode:
    """Create a unique invite code for a club the requester manages."""
    role = RoleKind(data.role)
    if role not in INVITABLE_ROLES:
        raise ValidationError(f"Invite codes cannot grant the {role.value} role")

    expires_at = to_utc(data.expires_at)
    if expires_at is not None and expires_at <= utc_now():
        raise ValidationError("Expiry must be in the future")

    max_attempts = get_settings().INVITE_CODE_MAX_ATTEMPTS
    try:
        await require_club_owner(db, club_id=club_id, user_id=requesting_user_id)

        for attempt in range(1, max_attempts + 1):
            invite = ClubInviteCode(
                code=generate_invite_code(),
                club_id=club_id,
                role=role,
                created_by=requesting_user_id,
                is_active=True,
                expires_at=expires_at,
                usage_limit=data.usage_limit,
                used_count=0,
                description=data.description,
            )
            try:
                async with db.begin_nested():
                    db.add(invite)
                    await db.flush()
            except IntegrityError:
                logger.warning(
                    "Invite code collision for club %s (attempt %d/%d)",
                    club_id,
                    attempt,
                    max_attempts,
                )
                continue
            break
        else:
            raise TransientError(
                "Could not generate a unique invite code",
                error_code="INVITE_CODE_EXHAUSTED_ATTEMPTS",
            )

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Created invite code %s for club %s",
        invite.code,
        club_id,
        extra={
            "extra_fields": {
                "club_id": club_id,
                "role": role.value,
                "usage_limit": invite.usage_limit,
            }
        },
    )
    return invite


async def list_club_invite_codes(
    db: AsyncSession, *, club_id: int, requesting_user_id: int
) -> list[ClubInviteCode]:
    await require_club_owner(db, club_id=club_id, user_id=requesting_user_id)
    result = await db.execute(
        select(ClubInviteCode)
        .where(ClubInviteCode.club_id == club_id)
        .order_by(ClubInviteCode.created_at.desc(), ClubInviteCode.id.desc())
    )
    return list(result.scalars().all())


async def deactivate_invite_code(
    db: AsyncSession, *, code_id: int, requesting_user_id: int
) -> ClubInviteCode:
    """Deactivate an invite code. Repeating the call is a no-op."""
    try:
        await apply_lock_timeout(db)
        result = await db.execute(
            select(ClubInviteCode)
            .where(ClubInviteCode.id == code_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        invite = result.scalar_one_or_none()
        if invite is None:
            raise _not_found()

        await require_club_owner(db, club_id=invite.club_id, user_id=requesting_user_id)

        was_active = invite.is_active
        invite.is_active = False
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    if was_active:
        logger.info(
            "Deactivated invite code %s for club %s", invite.code, invite.club_id
        )
    return invite


# ---------------------------------------------------------------------------
# Read-only checks
# ---------------------------------------------------------------------------


async def validate_invite_code(db: AsyncSession, code: str) -> InviteValidation:
    """Report whether ``code`` could be redeemed right now. Never writes.

    The answer can be stale by the time a redemption runs; onboarding always
    re-checks under lock in ``redeem_invite_code``.
    """
    invite = await get_invite_by_code(db, code)
    if invite is None:
        error = _not_found()
        return InviteValidation(
            valid=False, message=error.message, reason=error.error_code
        )

    error = terminal_state(invite)
    return InviteValidation(
        valid=error is None,
        message=error.message if error else "Invite code is valid",
        reason=error.error_code if error else None,
        club=await build_club_summary(db, invite.club),
        role=invite.role,
        expires_at=invite.expires_at,
        usage_limit=invite.usage_limit,
        used_count=invite.used_count,
        remaining_uses=invite.remaining_uses,
    )


async def preview_invite_code(
    db: AsyncSession, *, code: str, user_id: int
) -> InvitePreview:
    """What would happen if ``user_id`` redeemed ``code`` now. Never writes."""
    invite = await get_invite_by_code(db, code)
    if invite is None:
        return InvitePreview(
            valid=False,
            user_can_join=False,
            already_member=False,
            message=_not_found().message,
        )

    error = terminal_state(invite)
    already_member = await is_user_in_club(db, user_id=user_id, club_id=invite.club_id)
    club = await build_club_summary(db, invite.club)

    if error is not None:
        message = error.message
    elif already_member:
        message = f"You are already a member of {club.name}"
    else:
        message = f"You can join {club.name} as a {invite.role.value}"

    return InvitePreview(
        valid=error is None,
        club=club,
        role=invite.role,
        user_can_join=error is None and not already_member,
        already_member=already_member,
        message=message,
    )


# ---------------------------------------------------------------------------
# Redemption (joins the caller's transaction)
# ---------------------------------------------------------------------------


async def redeem_invite_code(
    db: AsyncSession, *, code: str, user_id: int, role: RoleKind
) -> ClubInviteCode:
    """Consume one use of ``code``. Does not commit.

    Lock, re-check, then increment. On any failure nothing is written and
    the typed error propagates so the caller's transaction rolls back.

    Raises:
        NotFoundError: no such code.
        DeactivatedError, ExpiredError, ExhaustedError: terminal states.
        ValidationError: the code grants a different role.
    """
    await apply_lock_timeout(db)
    invite = await get_invite_by_code(db, code, for_update=True)
    if invite is None:
        raise _not_found()

    error = terminal_state(invite)
    if error is not None:
        logger.info(
            "Rejected redemption of %s by user %s: %s",
            invite.code,
            user_id,
            error.error_code,
        )
        raise error

    if invite.role != role:
        raise ValidationError(
            f"This invite code is for {invite.role.value} accounts, not {role.value}",
            error_code="INVITE_CODE_ROLE_MISMATCH",
        )

    invite.used_count += 1
    await db.flush()

    logger.info(
        "Redeemed invite code %s by user %s (%d/%s)",
        invite.code,
        user_id,
        invite.used_count,
        invite.usage_limit if invite.usage_limit is not None else "unlimited",
        extra={"extra_fields": {"club_id": invite.club_id, "user_id": user_id}},
    )
    return invite
