"""Onboarding Service models package.

Re-exports all models and enums so that:
  - ``from services.onboarding_service.models import UserRole`` works
  - Alembic env.py sees every table through a single import

Model definitions are split across:
  - models/user.py: User, UserProfile, UserChild
  - models/club.py: Club, ClubInviteCode
  - models/role.py: UserRole, UserAccount
  - models/progress.py: CompletionStep
"""

from services.onboarding_service.models.club import Club, ClubInviteCode  # noqa: F401
from services.onboarding_service.models.enums import (  # noqa: F401
    INVITABLE_ROLES,
    ChildRelationship,
    ClubType,
    RoleKind,
)
from services.onboarding_service.models.progress import CompletionStep  # noqa: F401
from services.onboarding_service.models.role import (  # noqa: F401
    ACCOUNT_NUMBER_PATTERN,
    UserAccount,
    UserRole,
)
from services.onboarding_service.models.user import (  # noqa: F401
    User,
    UserChild,
    UserProfile,
)

__all__ = [
    "ACCOUNT_NUMBER_PATTERN",
    "INVITABLE_ROLES",
    "ChildRelationship",
    "Club",
    "ClubInviteCode",
    "ClubType",
    "CompletionStep",
    "RoleKind",
    "User",
    "UserAccount",
    "UserChild",
    "UserProfile",
    "UserRole",
]
