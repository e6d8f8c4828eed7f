"""Onboarding, role management and progress endpoints."""

from typing import Annotated

from fastapi import APIRouter, Body, Depends, status
from libs.db.session import get_async_db
from services.onboarding_service.dependencies import get_current_platform_user
from services.onboarding_service.models import User
from services.onboarding_service.schemas import (
    ChildCreate,
    ChildResponse,
    ChildrenResponse,
    CompletionUpdate,
    CompletionUpdateResponse,
    OnboardingPayload,
    OnboardingResult,
    OnboardingStatus,
    PrimaryRoleResponse,
    RoleDeactivationResponse,
    RoleSelection,
    UserStatus,
)
from services.onboarding_service.services import (
    completion,
    onboarding,
    profiles,
    role_accounts,
    status as status_service,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/onboarding", tags=["onboarding"])

OnboardingBody = Annotated[OnboardingPayload, Body(discriminator="role")]


# ---------------------------------------------------------------------------
# Onboarding
# ---------------------------------------------------------------------------


@router.post(
    "/complete", response_model=OnboardingResult, status_code=status.HTTP_201_CREATED
)
async def complete_onboarding(
    payload: OnboardingBody,
    current_user: User = Depends(get_current_platform_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Create the caller's first role and account."""
    return await onboarding.complete_initial_onboarding(
        db, user_id=current_user.id, payload=payload
    )


@router.post(
    "/roles", response_model=OnboardingResult, status_code=status.HTTP_201_CREATED
)
async def add_role(
    payload: OnboardingBody,
    current_user: User = Depends(get_current_platform_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Add another role to an existing user."""
    return await onboarding.add_user_role(db, user_id=current_user.id, payload=payload)


# ---------------------------------------------------------------------------
# Role management
# ---------------------------------------------------------------------------


@router.put("/primary-role", response_model=PrimaryRoleResponse)
async def set_primary_role(
    selection: RoleSelection,
    current_user: User = Depends(get_current_platform_user),
    db: AsyncSession = Depends(get_async_db),
):
    user = await role_accounts.set_primary_role(
        db, user_id=current_user.id, role=selection.role
    )
    return PrimaryRoleResponse(new_primary_role=user.primary_role)


@router.post("/roles/deactivate", response_model=RoleDeactivationResponse)
async def deactivate_role(
    selection: RoleSelection,
    current_user: User = Depends(get_current_platform_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Soft-deactivate a role, at every club unless ``clubId`` is given.

    Deactivating an inactive role is a no-op.
    """
    deactivated, primary_role = await role_accounts.deactivate_role(
        db,
        user_id=current_user.id,
        role=selection.role,
        club_id=selection.club_id,
    )
    return RoleDeactivationResponse(
        deactivated=deactivated,
        primary_role=primary_role,
        message="Role deactivated successfully"
        if deactivated
        else "No active role matched",
    )


# ---------------------------------------------------------------------------
# Status & progress
# ---------------------------------------------------------------------------


@router.get("/status", response_model=UserStatus)
async def get_user_status(
    current_user: User = Depends(get_current_platform_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await status_service.get_user_status(db, current_user)


@router.get("/progress", response_model=OnboardingStatus)
async def get_onboarding_progress(
    current_user: User = Depends(get_current_platform_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await status_service.get_onboarding_status(db, current_user)


@router.post("/completion", response_model=CompletionUpdateResponse)
async def update_completion(
    update: CompletionUpdate,
    current_user: User = Depends(get_current_platform_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Mark a checklist step complete (defaults to the primary role)."""
    return await completion.update_completion_progress(
        db,
        user_id=current_user.id,
        step=update.step,
        role=update.role,
        primary_role=current_user.primary_role,
    )


# ---------------------------------------------------------------------------
# Children
# ---------------------------------------------------------------------------


@router.get("/children", response_model=ChildrenResponse)
async def list_children(
    current_user: User = Depends(get_current_platform_user),
    db: AsyncSession = Depends(get_async_db),
):
    return ChildrenResponse(
        children=await profiles.list_children(db, current_user.id)
    )


@router.post(
    "/children", response_model=ChildResponse, status_code=status.HTTP_201_CREATED
)
async def add_child(
    child: ChildCreate,
    current_user: User = Depends(get_current_platform_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await profiles.add_child(db, user=current_user, data=child)
