"""User profile and children writes used by onboarding."""

from datetime import date
from typing import Iterable, Optional

from libs.common.errors import NotFoundError, ValidationError
from libs.common.logging import get_logger
from services.onboarding_service.models import (
    RoleKind,
    User,
    UserChild,
    UserProfile,
)
from services.onboarding_service.schemas import (
    ChildData,
    ChildResponse,
    PersonalData,
    ProfileCompletion,
)
from services.onboarding_service.services.role_accounts import has_active_role_kind
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

REQUIRED_PROFILE_FIELDS = ("first_name", "last_name", "date_of_birth")
OPTIONAL_PROFILE_FIELDS = ("phone", "address", "avatar_url")
REQUIRED_WEIGHT = 70
OPTIONAL_WEIGHT = 30


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


async def get_profile(db: AsyncSession, user_id: int) -> Optional[UserProfile]:
    result = await db.execute(select(UserProfile).where(UserProfile.user_id == user_id))
    return result.scalar_one_or_none()


async def upsert_profile(
    db: AsyncSession, *, user_id: int, data: Optional[PersonalData]
) -> Optional[UserProfile]:
    """Create the profile or overwrite the fields present in ``data``.

    Fields the caller did not send are left untouched. Does not commit.
    """
    profile = await get_profile(db, user_id)
    if data is None:
        return profile

    if data.date_of_birth and data.date_of_birth > date.today():
        raise ValidationError("Date of birth cannot be in the future")

    if profile is None:
        profile = UserProfile(user_id=user_id)
        db.add(profile)

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(profile, field, value)

    await db.flush()
    return profile


def profile_completion(profile: Optional[UserProfile]) -> ProfileCompletion:
    """Weighted completion: required fields carry 70%, optional ones 30%."""
    missing_required = [
        f for f in REQUIRED_PROFILE_FIELDS if not getattr(profile, f, None)
    ]
    missing_optional = [
        f for f in OPTIONAL_PROFILE_FIELDS if not getattr(profile, f, None)
    ]

    required_done = len(REQUIRED_PROFILE_FIELDS) - len(missing_required)
    optional_done = len(OPTIONAL_PROFILE_FIELDS) - len(missing_optional)
    progress = round(
        required_done / len(REQUIRED_PROFILE_FIELDS) * REQUIRED_WEIGHT
        + optional_done / len(OPTIONAL_PROFILE_FIELDS) * OPTIONAL_WEIGHT
    )

    return ProfileCompletion(
        completed=not missing_required,
        progress=progress,
        missing_fields=missing_required + missing_optional,
    )


# ---------------------------------------------------------------------------
# Children
# ---------------------------------------------------------------------------


def _validate_child(child: ChildData, index: int) -> None:
    label = f"Child {index + 1}"
    if not child.first_name or not child.first_name.strip():
        raise ValidationError(f"{label}: first name is required")
    if not child.last_name or not child.last_name.strip():
        raise ValidationError(f"{label}: last name is required")
    if child.date_of_birth > date.today():
        raise ValidationError(f"{label}: date of birth cannot be in the future")


def _to_response(child: UserChild) -> ChildResponse:
    return ChildResponse(
        id=child.id,
        first_name=child.first_name,
        last_name=child.last_name,
        date_of_birth=child.date_of_birth,
        relationship=child.relationship_kind,
        club_id=child.club_id,
    )


async def create_children(
    db: AsyncSession,
    *,
    parent_user_id: int,
    children: Iterable[ChildData],
    club_id: Optional[int] = None,
) -> list[UserChild]:
    """Insert children one at a time, validating each as it is inserted.

    A failing child raises after the earlier ones were flushed; the caller's
    rollback discards them. Does not commit.
    """
    created: list[UserChild] = []
    for index, data in enumerate(children):
        _validate_child(data, index)
        child = UserChild(
            parent_user_id=parent_user_id,
            relationship_kind=data.relationship,
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            date_of_birth=data.date_of_birth,
            club_id=club_id,
            membership_code=data.membership_code,
            medical_info=data.medical_info,
        )
        db.add(child)
        await db.flush()
        created.append(child)

    logger.info("Created %d children for parent %s", len(created), parent_user_id)
    return created


async def add_child(
    db: AsyncSession, *, user: User, data: ChildData
) -> ChildResponse:
    """Register one more child for an onboarded parent."""
    try:
        if not await has_active_role_kind(db, user_id=user.id, role=RoleKind.PARENT):
            raise NotFoundError(
                "User has no active parent role", error_code="ROLE_NOT_FOUND"
            )
        club_id = await db.scalar(
            select(UserChild.club_id)
            .where(UserChild.parent_user_id == user.id, UserChild.club_id.is_not(None))
            .limit(1)
        )
        (child,) = await create_children(
            db, parent_user_id=user.id, children=[data], club_id=club_id
        )
        response = _to_response(child)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    return response


async def list_children(db: AsyncSession, parent_user_id: int) -> list[ChildResponse]:
    result = await db.execute(
        select(UserChild)
        .where(UserChild.parent_user_id == parent_user_id)
        .order_by(UserChild.created_at, UserChild.id)
    )
    return [_to_response(child) for child in result.scalars().all()]
