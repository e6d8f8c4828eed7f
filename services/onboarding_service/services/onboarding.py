"""Onboarding orchestration.

Every onboarding call is one unit of work on the caller's session:

    lock user row
      -> role specific work (club / invite redemption / children)
      -> UserRole + UserAccount (numbered inside a SAVEPOINT)
      -> profile
      -> primary role + onboarded flag
    commit

Any failure rolls the whole session back, so a failed call leaves no club,
role, account, child row or consumed invite use behind. Typed errors from
the helpers propagate unchanged; raw database errors are translated into
``ConflictError`` / ``TransientError``.

Checklist progress is recorded after the commit and can never fail the call.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Union, assert_never

from libs.common.datetime_utils import utc_now
from libs.common.errors import (
    AppError,
    ConflictError,
    TransientError,
    ValidationError,
)
from libs.common.logging import get_logger
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from services.onboarding_service.models import RoleKind, User, UserAccount
from services.onboarding_service.schemas import (
    AccountSummary,
    ClubCoachPayload,
    ClubManagerPayload,
    MemberPayload,
    OnboardingPayload,
    OnboardingRequest,
    OnboardingResult,
    ParentPayload,
)
from services.onboarding_service.services import completion
from services.onboarding_service.services.clubs import create_club, require_club_owner
from services.onboarding_service.services.invite_codes import redeem_invite_code
from services.onboarding_service.services.profiles import (
    create_children,
    profile_completion,
    upsert_profile,
)
from services.onboarding_service.services.role_accounts import (
    create_role_and_account,
    list_account_summaries,
    lock_user,
)
from services.onboarding_service.services.status import build_user_summary
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

_payload_adapter: TypeAdapter[OnboardingPayload] = TypeAdapter(OnboardingRequest)

SUCCESS_MESSAGES = {
    RoleKind.CLUB_MANAGER: "Club created successfully",
    RoleKind.MEMBER: "Joined club successfully",
    RoleKind.PARENT: "Parent account created successfully",
    RoleKind.CLUB_COACH: "Coach account created successfully",
}


@dataclass
class _RoleOutcome:
    account: UserAccount
    club_id: Optional[int] = None
    children_ids: list[int] = field(default_factory=list)
    steps: list[str] = field(default_factory=list)


def parse_payload(payload: Union[OnboardingPayload, Mapping[str, Any]]) -> OnboardingPayload:
    """Accept a parsed payload or a raw camelCase/snake_case mapping."""
    if isinstance(
        payload, (ClubManagerPayload, MemberPayload, ParentPayload, ClubCoachPayload)
    ):
        return payload
    if not isinstance(payload, Mapping):
        raise ValidationError("Onboarding payload must be an object")
    if not payload.get("role"):
        raise ValidationError("Role is required", error_code="ROLE_REQUIRED")
    try:
        return _payload_adapter.validate_python(dict(payload))
    except PydanticValidationError as exc:
        raise ValidationError(
            "Invalid onboarding payload",
            details={
                "errors": exc.errors(
                    include_url=False, include_context=False, include_input=False
                )
            },
        ) from exc


# ---------------------------------------------------------------------------
# Per-role handlers (run inside the onboarding transaction)
# ---------------------------------------------------------------------------


async def _onboard_club_manager(
    db: AsyncSession, user: User, payload: ClubManagerPayload
) -> _RoleOutcome:
    club = await create_club(db, created_by=user.id, payload=payload)
    _, account = await create_role_and_account(
        db, user=user, role=RoleKind.CLUB_MANAGER, club_id=club.id
    )
    return _RoleOutcome(account=account, club_id=club.id, steps=["club_details"])


async def _onboard_member(
    db: AsyncSession, user: User, payload: MemberPayload
) -> _RoleOutcome:
    if not payload.club_invite_code:
        raise ValidationError(
            "An invite code is required to join a club",
            error_code="INVITE_CODE_REQUIRED",
        )
    invite = await redeem_invite_code(
        db, code=payload.club_invite_code, user_id=user.id, role=RoleKind.MEMBER
    )
    _, account = await create_role_and_account(
        db,
        user=user,
        role=RoleKind.MEMBER,
        club_id=invite.club_id,
        position=payload.position,
        parent_phone=payload.parent_phone,
    )
    steps = ["join_club"]
    if payload.personal_data and payload.personal_data.emergency_contact:
        steps.append("emergency_contact")
    return _RoleOutcome(account=account, club_id=invite.club_id, steps=steps)


async def _onboard_parent(
    db: AsyncSession, user: User, payload: ParentPayload
) -> _RoleOutcome:
    club_id = None
    if payload.club_invite_code:
        invite = await redeem_invite_code(
            db, code=payload.club_invite_code, user_id=user.id, role=RoleKind.PARENT
        )
        club_id = invite.club_id

    _, account = await create_role_and_account(
        db, user=user, role=RoleKind.PARENT, club_id=club_id
    )
    children = await create_children(
        db, parent_user_id=user.id, children=payload.children, club_id=club_id
    )

    steps = ["add_children"]
    if club_id is not None:
        steps.append("join_club")
    return _RoleOutcome(
        account=account,
        club_id=club_id,
        children_ids=[child.id for child in children],
        steps=steps,
    )


async def _onboard_club_coach(
    db: AsyncSession, user: User, payload: ClubCoachPayload, actor_id: int
) -> _RoleOutcome:
    club = await require_club_owner(db, club_id=payload.club_id, user_id=actor_id)
    _, account = await create_role_and_account(
        db, user=user, role=RoleKind.CLUB_COACH, club_id=club.id
    )
    return _RoleOutcome(account=account, club_id=club.id, steps=["join_club"])


# ---------------------------------------------------------------------------
# Unit of work
# ---------------------------------------------------------------------------


async def _onboard(
    db: AsyncSession,
    *,
    user_id: int,
    payload: Union[OnboardingPayload, Mapping[str, Any]],
    actor_id: Optional[int],
    initial: bool,
) -> OnboardingResult:
    parsed = parse_payload(payload)
    role = RoleKind(parsed.role)
    actor_id = actor_id if actor_id is not None else user_id

    try:
        user = await lock_user(db, user_id)

        if isinstance(parsed, ClubManagerPayload):
            outcome = await _onboard_club_manager(db, user, parsed)
        elif isinstance(parsed, MemberPayload):
            outcome = await _onboard_member(db, user, parsed)
        elif isinstance(parsed, ParentPayload):
            outcome = await _onboard_parent(db, user, parsed)
        elif isinstance(parsed, ClubCoachPayload):
            outcome = await _onboard_club_coach(db, user, parsed, actor_id)
        else:
            assert_never(parsed)

        profile = await upsert_profile(db, user_id=user.id, data=parsed.personal_data)

        # First role (or a cleared primary) becomes primary; otherwise only on request
        if user.primary_role is None or parsed.set_as_primary:
            user.primary_role = role

        now = utc_now()
        if not user.is_onboarded:
            user.is_onboarded = True
            user.onboarding_completed_at = now
        user.updated_at = now

        await db.commit()
    except AppError:
        await db.rollback()
        raise
    except IntegrityError as exc:
        await db.rollback()
        logger.warning("Onboarding for user %s hit a constraint: %s", user_id, exc.orig)
        raise ConflictError(
            "Onboarding conflicts with existing data", error_code="ONBOARDING_CONFLICT"
        ) from exc
    except OperationalError as exc:
        await db.rollback()
        logger.warning("Onboarding for user %s could not lock rows: %s", user_id, exc.orig)
        raise TransientError() from exc
    except Exception:
        await db.rollback()
        raise

    account = outcome.account
    logger.info(
        "Onboarded user %s as %s (account %s)",
        user_id,
        role.value,
        account.account_number,
        extra={
            "extra_fields": {
                "user_id": user_id,
                "role": role.value,
                "club_id": outcome.club_id,
                "account_number": account.account_number,
                "initial": initial,
            }
        },
    )

    accounts = await list_account_summaries(db, user_id)
    summary = next(
        (a for a in accounts if a.account_number == account.account_number),
        AccountSummary.model_validate(account),
    )
    result = OnboardingResult(
        account_number=account.account_number,
        account=summary,
        user=build_user_summary(user, profile),
        club_id=outcome.club_id,
        children_ids=outcome.children_ids,
        accounts=accounts,
        message=SUCCESS_MESSAGES[role],
    )

    steps = list(outcome.steps)
    if profile_completion(profile).completed:
        steps.insert(0, "profile")
    await _track_completion(db, user_id=user_id, role=role, steps=steps)

    return result


async def _track_completion(
    db: AsyncSession, *, user_id: int, role: RoleKind, steps: list[str]
) -> None:
    try:
        await completion.record_steps(db, user_id=user_id, role=role, steps=steps)
    except Exception:
        logger.exception(
            "Failed to record onboarding progress for user %s (%s)", user_id, role.value
        )


async def complete_initial_onboarding(
    db: AsyncSession,
    *,
    user_id: int,
    payload: Union[OnboardingPayload, Mapping[str, Any]],
    actor_id: Optional[int] = None,
) -> OnboardingResult:
    """Create the user's first role. It becomes the primary role."""
    return await _onboard(
        db, user_id=user_id, payload=payload, actor_id=actor_id, initial=True
    )


async def add_user_role(
    db: AsyncSession,
    *,
    user_id: int,
    payload: Union[OnboardingPayload, Mapping[str, Any]],
    actor_id: Optional[int] = None,
) -> OnboardingResult:
    """Add another role. The primary role moves only with ``setAsPrimary``."""
    return await _onboard(
        db, user_id=user_id, payload=payload, actor_id=actor_id, initial=False
    )


async def assign_club_coach(
    db: AsyncSession, *, club_id: int, coach_user_id: int, manager_id: int
) -> OnboardingResult:
    """A club manager grants the coach role at their club to another user."""
    return await add_user_role(
        db,
        user_id=coach_user_id,
        payload=ClubCoachPayload(club_id=club_id),
        actor_id=manager_id,
    )
