"""Account number allocation and lookup.

Account numbers are ``CQ`` followed by 9 random digits. Uniqueness is owned
by the ``user_accounts.account_number`` unique index: a candidate is inserted
inside a SAVEPOINT and a collision simply rolls the savepoint back and draws
again. No in-process check-then-insert is relied on, so the guarantee holds
across any number of workers.
"""

import re
import secrets
from typing import Callable, Optional

from libs.common.config import get_settings
from libs.common.errors import AccountNumberExhaustedError, NotFoundError, ValidationError
from libs.common.logging import get_logger
from services.onboarding_service.models import (
    Club,
    RoleKind,
    User,
    UserAccount,
    UserProfile,
)
from services.onboarding_service.schemas import (
    AccountDetail,
    AccountLookupResponse,
    AccountOwner,
    AccountSearchResult,
)
from sqlalchemy import exists, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

ACCOUNT_NUMBER_DIGITS = 9
ACCOUNT_NUMBER_RE = re.compile(r"^CQ\d{9}$")
SEARCH_MIN_LENGTH = 2
SEARCH_LIMIT = 50


def is_valid_account_number(value: str) -> bool:
    return bool(value) and ACCOUNT_NUMBER_RE.match(value) is not None


def generate_candidate() -> str:
    """Draw a random candidate. Not yet known to be unique."""
    prefix = get_settings().ACCOUNT_NUMBER_PREFIX
    return f"{prefix}{secrets.randbelow(10**ACCOUNT_NUMBER_DIGITS):0{ACCOUNT_NUMBER_DIGITS}d}"


def _is_account_number_collision(exc: IntegrityError) -> bool:
    return "account_number" in str(exc.orig if exc.orig is not None else exc)


async def allocate_account(
    db: AsyncSession,
    build_account: Callable[[str], UserAccount],
) -> UserAccount:
    """Insert a new account under a freshly drawn, unique account number.

    ``build_account`` receives the candidate number and returns an unsaved
    ``UserAccount``. Runs inside the caller's transaction; each attempt is
    isolated in a SAVEPOINT so a collision leaves the outer work intact.

    Raises:
        AccountNumberExhaustedError: every attempt collided.
    """
    max_attempts = get_settings().ACCOUNT_NUMBER_MAX_ATTEMPTS

    for attempt in range(1, max_attempts + 1):
        candidate = generate_candidate()
        account = build_account(candidate)
        try:
            async with db.begin_nested():
                db.add(account)
                await db.flush()
        except IntegrityError as exc:
            if not _is_account_number_collision(exc):
                raise
            logger.warning(
                "Account number collision on %s (attempt %d/%d)",
                candidate,
                attempt,
                max_attempts,
            )
            continue

        return account

    logger.error("Account number allocation exhausted after %d attempts", max_attempts)
    raise AccountNumberExhaustedError(
        f"Could not allocate a unique account number after {max_attempts} attempts"
    )


async def generate_account_number(db: AsyncSession) -> str:
    """Return a number that is unused right now (administrative use).

    The number is not reserved; onboarding always allocates through
    ``allocate_account`` so the unique index arbitrates races.
    """
    max_attempts = get_settings().ACCOUNT_NUMBER_MAX_ATTEMPTS
    for _ in range(max_attempts):
        candidate = generate_candidate()
        taken = await db.scalar(
            select(exists().where(UserAccount.account_number == candidate))
        )
        if not taken:
            return candidate
    raise AccountNumberExhaustedError()


async def get_account_by_number(
    db: AsyncSession, account_number: str
) -> AccountLookupResponse:
    account_number = (account_number or "").strip().upper()
    if not is_valid_account_number(account_number):
        raise ValidationError(
            "Invalid account number format", error_code="INVALID_ACCOUNT_NUMBER"
        )

    query = (
        select(UserAccount, UserProfile, User, Club.name)
        .join(User, User.id == UserAccount.user_id)
        .outerjoin(UserProfile, UserProfile.user_id == UserAccount.user_id)
        .outerjoin(Club, Club.id == UserAccount.club_id)
        .where(UserAccount.account_number == account_number)
    )
    row = (await db.execute(query)).first()
    if row is None:
        raise NotFoundError("Account not found", error_code="ACCOUNT_NOT_FOUND")

    account, profile, user, club_name = row
    return AccountLookupResponse(
        account=AccountDetail(
            account_number=account.account_number,
            user_id=account.user_id,
            role=account.role,
            club_id=account.club_id,
            club_name=club_name,
            is_active=account.is_active,
            created_at=account.created_at,
            onboarding_completed_at=account.onboarding_completed_at,
        ),
        user=AccountOwner(
            first_name=profile.first_name if profile else None,
            last_name=profile.last_name if profile else None,
            email=user.email,
            avatar_url=profile.avatar_url if profile else None,
        ),
    )


async def search_accounts(
    db: AsyncSession, query_text: str, role: Optional[RoleKind] = None
) -> list[AccountSearchResult]:
    """Search by account number fragment or owner name, newest first."""
    query_text = (query_text or "").strip()
    if len(query_text) < SEARCH_MIN_LENGTH:
        raise ValidationError(
            f"Search query must be at least {SEARCH_MIN_LENGTH} characters"
        )

    # % and _ in the search text match literally
    escaped = (
        query_text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    )
    pattern = f"%{escaped}%"
    query = (
        select(UserAccount, UserProfile.first_name, UserProfile.last_name, Club.name)
        .outerjoin(UserProfile, UserProfile.user_id == UserAccount.user_id)
        .outerjoin(Club, Club.id == UserAccount.club_id)
        .where(
            or_(
                UserAccount.account_number.ilike(pattern, escape="\\"),
                UserProfile.first_name.ilike(pattern, escape="\\"),
                UserProfile.last_name.ilike(pattern, escape="\\"),
            )
        )
    )
    if role is not None:
        query = query.where(UserAccount.role == role)
    query = query.order_by(UserAccount.created_at.desc(), UserAccount.id.desc()).limit(
        SEARCH_LIMIT
    )

    rows = (await db.execute(query)).all()
    return [
        AccountSearchResult(
            account_number=account.account_number,
            user_full_name=f"{first_name or ''} {last_name or ''}".strip(),
            role=account.role,
            club_name=club_name,
            is_active=account.is_active,
            created_at=account.created_at,
        )
        for account, first_name, last_name, club_name in rows
    ]
