"""Read-only user and onboarding status views."""

from typing import Optional

from services.onboarding_service.models import RoleKind, User, UserProfile
from services.onboarding_service.schemas import (
    CompletionProgressBreakdown,
    OnboardingStatus,
    RecommendedAction,
    UserStatus,
    UserSummary,
)
from services.onboarding_service.services import completion
from services.onboarding_service.services.clubs import get_managed_club
from services.onboarding_service.services.profiles import (
    get_profile,
    profile_completion,
)
from services.onboarding_service.services.role_accounts import list_account_summaries
from sqlalchemy.ext.asyncio import AsyncSession

ONBOARDING_STEPS = ("profile", "role", "preferences")


def build_user_summary(user: User, profile: Optional[UserProfile]) -> UserSummary:
    return UserSummary(
        id=user.id,
        email=user.email,
        name=profile.full_name if profile else None,
        avatar_url=profile.avatar_url if profile else None,
        primary_role=user.primary_role,
        is_onboarded=user.is_onboarded,
    )


async def available_roles(db: AsyncSession, user_id: int) -> list[RoleKind]:
    """Roles the user may still add on their own.

    Coaches are assigned by a club manager and are never self-service. A
    user who has ever created a club cannot create another, even after
    deactivating the manager role.
    """
    roles = []
    if await get_managed_club(db, user_id) is None:
        roles.append(RoleKind.CLUB_MANAGER)
    roles.extend([RoleKind.MEMBER, RoleKind.PARENT])
    return roles


async def get_user_status(db: AsyncSession, user: User) -> UserStatus:
    profile = await get_profile(db, user.id)
    return UserStatus(
        user=build_user_summary(user, profile),
        accounts=await list_account_summaries(db, user.id),
        available_roles=await available_roles(db, user.id),
        completion=await completion.get_progress(db, user.id),
    )


async def get_onboarding_status(db: AsyncSession, user: User) -> OnboardingStatus:
    profile = await get_profile(db, user.id)
    profile_state = profile_completion(profile)
    accounts = await list_account_summaries(db, user.id)
    progress = await completion.get_progress(db, user.id)

    preferences_done = any(
        "preferences" in p.completed_steps for p in progress.per_role_progress
    )
    done = {
        "profile": profile_state.completed,
        "role": bool(accounts),
        "preferences": preferences_done,
    }
    completed_steps = [step for step in ONBOARDING_STEPS if done[step]]
    current_step = next(
        (step for step in ONBOARDING_STEPS if not done[step]), "completed"
    )

    roles_progress = 100 if accounts else 0
    preferences_progress = 100 if preferences_done else 0
    breakdown = CompletionProgressBreakdown(
        profile=profile_state.progress,
        roles=roles_progress,
        preferences=preferences_progress,
        overall=round(
            (profile_state.progress + roles_progress + preferences_progress) / 3
        ),
    )

    actions = []
    if not profile_state.completed:
        actions.append(
            RecommendedAction(
                action="complete_profile",
                description="Add your name and date of birth",
                category="profile",
                priority=1,
            )
        )
    if not accounts:
        actions.append(
            RecommendedAction(
                action="choose_role",
                description="Create a club or join one with an invite code",
                category="role",
                priority=1,
            )
        )
    for role_progress in progress.per_role_progress:
        if (
            role_progress.role == RoleKind.CLUB_MANAGER
            and "invite_members" in role_progress.remaining_steps
        ):
            actions.append(
                RecommendedAction(
                    action="invite_members",
                    description="Create an invite code for your club",
                    category="club",
                    priority=2,
                )
            )
    if not preferences_done:
        actions.append(
            RecommendedAction(
                action="set_preferences",
                description="Choose your notification and privacy preferences",
                category="preferences",
                priority=3,
            )
        )

    return OnboardingStatus(
        is_onboarded=user.is_onboarded,
        current_step=current_step,
        completed_steps=completed_steps,
        available_roles=await available_roles(db, user.id),
        completion_progress=breakdown,
        profile_completion=profile_state,
        recommended_actions=actions,
        account_numbers=accounts,
    )
