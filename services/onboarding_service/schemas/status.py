"""Role management, status and progress schemas."""

from datetime import date
from typing import Optional

from pydantic import Field
from services.onboarding_service.models.enums import ChildRelationship, RoleKind
from services.onboarding_service.schemas.common import CamelModel
from services.onboarding_service.schemas.onboarding import (
    AccountSummary,
    ChildData,
    UserSummary,
)


class RoleSelection(CamelModel):
    role: RoleKind
    club_id: Optional[int] = None


class PrimaryRoleResponse(CamelModel):
    success: bool = True
    new_primary_role: RoleKind
    message: str = "Primary role updated successfully"


class RoleDeactivationResponse(CamelModel):
    success: bool = True
    deactivated: int
    primary_role: Optional[RoleKind] = None
    message: str = "Role deactivated successfully"


class RoleProgress(CamelModel):
    role: RoleKind
    completed_steps: list[str]
    remaining_steps: list[str]
    progress: int


class CompletionSummary(CamelModel):
    overall_progress: int
    per_role_progress: list[RoleProgress] = Field(default_factory=list)


class CompletionUpdate(CamelModel):
    step: str = Field(..., min_length=1, max_length=50)
    role: Optional[RoleKind] = None


class CompletionUpdateResponse(CamelModel):
    success: bool = True
    completed_step: str
    role: RoleKind
    new_progress: int
    overall_progress: int
    next_suggestion: Optional[str] = None


class UserStatus(CamelModel):
    user: UserSummary
    accounts: list[AccountSummary]
    available_roles: list[RoleKind]
    completion: CompletionSummary


class ProfileCompletion(CamelModel):
    completed: bool
    progress: int
    missing_fields: list[str]


class RecommendedAction(CamelModel):
    action: str
    description: str
    category: str
    priority: int


class CompletionProgressBreakdown(CamelModel):
    profile: int
    roles: int
    preferences: int
    overall: int


class OnboardingStatus(CamelModel):
    is_onboarded: bool
    current_step: str
    completed_steps: list[str]
    available_roles: list[RoleKind]
    completion_progress: CompletionProgressBreakdown
    profile_completion: ProfileCompletion
    recommended_actions: list[RecommendedAction]
    account_numbers: list[AccountSummary]


class ChildResponse(CamelModel):
    id: int
    first_name: str
    last_name: str
    date_of_birth: date
    relationship: ChildRelationship
    club_id: Optional[int] = None


class ChildCreate(ChildData):
    pass


class ChildrenResponse(CamelModel):
    children: list[ChildResponse]
