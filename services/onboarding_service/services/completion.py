"""Advisory onboarding checklist progress.

Nothing here guards an invariant. Recording a step twice is a no-op, and
failures are kept away from the onboarding transaction: the orchestrator
records steps only after its commit and logs, rather than raises, any error.
"""

from typing import Iterable, Optional

from libs.common.errors import NotFoundError, ValidationError
from libs.common.logging import get_logger
from services.onboarding_service.models import CompletionStep, RoleKind, UserRole
from services.onboarding_service.schemas import (
    CompletionSummary,
    CompletionUpdateResponse,
    RoleProgress,
)
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

CHECKLISTS: dict[RoleKind, tuple[str, ...]] = {
    RoleKind.CLUB_MANAGER: ("profile", "club_details", "invite_members", "preferences"),
    RoleKind.MEMBER: ("profile", "join_club", "emergency_contact", "preferences"),
    RoleKind.PARENT: ("profile", "join_club", "add_children", "preferences"),
    RoleKind.CLUB_COACH: ("profile", "join_club", "qualifications", "preferences"),
}


def _percent(done: int, total: int) -> int:
    return round(done * 100 / total) if total else 0


async def _completed_steps(db: AsyncSession, user_id: int) -> dict[RoleKind, set[str]]:
    result = await db.execute(
        select(CompletionStep.role, CompletionStep.step).where(
            CompletionStep.user_id == user_id
        )
    )
    steps: dict[RoleKind, set[str]] = {}
    for role, step in result.all():
        steps.setdefault(role, set()).add(step)
    return steps


async def _insert_step(db: AsyncSession, *, user_id: int, role: RoleKind, step: str) -> bool:
    existing = await db.scalar(
        select(CompletionStep.id).where(
            CompletionStep.user_id == user_id,
            CompletionStep.role == role,
            CompletionStep.step == step,
        )
    )
    if existing is not None:
        return False
    try:
        async with db.begin_nested():
            db.add(CompletionStep(user_id=user_id, role=role, step=step))
            await db.flush()
    except IntegrityError:
        # Recorded concurrently
        return False
    return True


async def record_steps(
    db: AsyncSession, *, user_id: int, role: RoleKind, steps: Iterable[str]
) -> int:
    """Record checklist steps for (user, role) and commit.

    Unknown steps raise ``ValidationError``. Returns how many were new.
    """
    checklist = CHECKLISTS[role]
    steps = list(steps)
    for step in steps:
        if step not in checklist:
            raise ValidationError(
                f"Unknown step '{step}' for role {role.value}",
                error_code="UNKNOWN_COMPLETION_STEP",
            )

    try:
        added = 0
        for step in steps:
            added += await _insert_step(db, user_id=user_id, role=role, step=step)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return added


async def record_step(
    db: AsyncSession, *, user_id: int, role: RoleKind, step: str
) -> bool:
    return bool(await record_steps(db, user_id=user_id, role=role, steps=[step]))


async def get_progress(db: AsyncSession, user_id: int) -> CompletionSummary:
    """Per-role and overall checklist percentages for the user's active roles."""
    result = await db.execute(
        select(UserRole.role)
        .where(UserRole.user_id == user_id, UserRole.is_active.is_(True))
        .distinct()
    )
    active_kinds = sorted(set(result.scalars().all()), key=list(RoleKind).index)
    completed = await _completed_steps(db, user_id)

    per_role = []
    for role in active_kinds:
        checklist = CHECKLISTS[role]
        done = [s for s in checklist if s in completed.get(role, set())]
        per_role.append(
            RoleProgress(
                role=role,
                completed_steps=done,
                remaining_steps=[s for s in checklist if s not in done],
                progress=_percent(len(done), len(checklist)),
            )
        )

    overall = (
        round(sum(p.progress for p in per_role) / len(per_role)) if per_role else 0
    )
    return CompletionSummary(overall_progress=overall, per_role_progress=per_role)


async def update_completion_progress(
    db: AsyncSession,
    *,
    user_id: int,
    step: str,
    role: Optional[RoleKind] = None,
    primary_role: Optional[RoleKind] = None,
) -> CompletionUpdateResponse:
    """Mark ``step`` complete. ``role`` defaults to the user's primary role."""
    role = role or primary_role
    if role is None:
        raise ValidationError(
            "No role given and the user has no primary role",
            error_code="ROLE_REQUIRED",
        )

    held = await db.scalar(
        select(UserRole.id)
        .where(
            UserRole.user_id == user_id,
            UserRole.role == role,
            UserRole.is_active.is_(True),
        )
        .limit(1)
    )
    if held is None:
        raise NotFoundError(
            f"User has no active {role.value} role", error_code="ROLE_NOT_FOUND"
        )

    if await record_step(db, user_id=user_id, role=role, step=step):
        logger.info("User %s completed step %s for %s", user_id, step, role.value)

    summary = await get_progress(db, user_id)
    role_progress = next(p for p in summary.per_role_progress if p.role == role)
    return CompletionUpdateResponse(
        completed_step=step,
        role=role,
        new_progress=role_progress.progress,
        overall_progress=summary.overall_progress,
        next_suggestion=role_progress.remaining_steps[0]
        if role_progress.remaining_steps
        else None,
    )
