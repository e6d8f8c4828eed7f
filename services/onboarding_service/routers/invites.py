"""Invite code endpoints: club management and public checks."""

from fastapi import APIRouter, Depends, Request, status
from libs.common.rate_limit import invite_limit
from libs.db.session import get_async_db
from services.onboarding_service.dependencies import get_current_platform_user
from services.onboarding_service.models import User
from services.onboarding_service.schemas import (
    CoachAssignmentRequest,
    DeactivateResponse,
    InviteCodeCreate,
    InviteCodeResponse,
    InvitePreview,
    InviteValidation,
    OnboardingResult,
)
from services.onboarding_service.services import invite_codes, onboarding
from sqlalchemy.ext.asyncio import AsyncSession

clubs_router = APIRouter(prefix="/clubs", tags=["clubs"])
router = APIRouter(prefix="/invite-codes", tags=["invite-codes"])


# ---------------------------------------------------------------------------
# Club manager
# ---------------------------------------------------------------------------


@clubs_router.post(
    "/{club_id}/invite-codes",
    response_model=InviteCodeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_invite_code(
    club_id: int,
    body: InviteCodeCreate,
    current_user: User = Depends(get_current_platform_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await invite_codes.create_invite_code(
        db, club_id=club_id, requesting_user_id=current_user.id, data=body
    )


@clubs_router.get("/{club_id}/invite-codes", response_model=list[InviteCodeResponse])
async def list_invite_codes(
    club_id: int,
    current_user: User = Depends(get_current_platform_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await invite_codes.list_club_invite_codes(
        db, club_id=club_id, requesting_user_id=current_user.id
    )


@clubs_router.post(
    "/{club_id}/coaches",
    response_model=OnboardingResult,
    status_code=status.HTTP_201_CREATED,
)
async def assign_coach(
    club_id: int,
    body: CoachAssignmentRequest,
    current_user: User = Depends(get_current_platform_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Give another user the coach role at this club (club manager only)."""
    return await onboarding.assign_club_coach(
        db, club_id=club_id, coach_user_id=body.user_id, manager_id=current_user.id
    )


@router.post("/{code_id}/deactivate", response_model=DeactivateResponse)
async def deactivate_invite_code(
    code_id: int,
    current_user: User = Depends(get_current_platform_user),
    db: AsyncSession = Depends(get_async_db),
):
    await invite_codes.deactivate_invite_code(
        db, code_id=code_id, requesting_user_id=current_user.id
    )
    return DeactivateResponse(message="Invite code deactivated")


# ---------------------------------------------------------------------------
# Lookups (rate limited: codes are short and guessable)
# ---------------------------------------------------------------------------


@router.get("/{code}/validate", response_model=InviteValidation)
@invite_limit
async def validate_invite_code(
    request: Request,
    code: str,
    db: AsyncSession = Depends(get_async_db),
):
    return await invite_codes.validate_invite_code(db, code)


@router.get("/{code}/preview", response_model=InvitePreview)
@invite_limit
async def preview_invite_code(
    request: Request,
    code: str,
    current_user: User = Depends(get_current_platform_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await invite_codes.preview_invite_code(
        db, code=code, user_id=current_user.id
    )
