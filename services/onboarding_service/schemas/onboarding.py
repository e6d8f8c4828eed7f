"""Onboarding request payloads and results.

``OnboardingRequest`` is a tagged union keyed by ``role``; each variant
carries only the fields its onboarding path needs.
"""

from datetime import date, datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import EmailStr, Field, field_validator
from services.onboarding_service.models.enums import (
    ChildRelationship,
    ClubType,
    RoleKind,
)
from services.onboarding_service.schemas.common import CamelModel

PHONE_PATTERN = r"^\+?[0-9][0-9\s\-()]{5,19}$"


def _normalize_invite_code(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip().upper()
    return value or None


class PersonalData(CamelModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    date_of_birth: Optional[date] = None
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    address: Optional[str] = Field(None, max_length=500)
    emergency_contact: Optional[str] = Field(None, max_length=255)
    medical_info: Optional[str] = Field(None, max_length=2000)
    avatar_url: Optional[str] = Field(None, max_length=500)


class ChildData(CamelModel):
    first_name: str = Field(..., max_length=100)
    last_name: str = Field(..., max_length=100)
    date_of_birth: date
    relationship: ChildRelationship = ChildRelationship.PARENT
    membership_code: Optional[str] = Field(None, max_length=50)
    medical_info: Optional[str] = Field(None, max_length=2000)


class ClubManagerPayload(CamelModel):
    role: Literal["club_manager"] = "club_manager"
    name: str = Field(..., min_length=1, max_length=255)
    club_type: ClubType
    description: Optional[str] = Field(None, max_length=2000)
    founded_year: Optional[int] = Field(None, ge=1800, le=2100)
    membership_capacity: Optional[int] = Field(None, gt=0)
    website: Optional[str] = Field(None, max_length=500)
    address: Optional[str] = None
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    email: Optional[EmailStr] = None
    logo_url: Optional[str] = Field(None, max_length=500)
    personal_data: Optional[PersonalData] = None
    set_as_primary: bool = False


class MemberPayload(CamelModel):
    role: Literal["member"] = "member"
    club_invite_code: str = Field(..., min_length=1, max_length=50)
    position: Optional[str] = Field(None, max_length=100)
    parent_phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    personal_data: Optional[PersonalData] = None
    set_as_primary: bool = False

    @field_validator("club_invite_code")
    @classmethod
    def normalize_code(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_invite_code(v)


class ParentPayload(CamelModel):
    role: Literal["parent"] = "parent"
    club_invite_code: Optional[str] = Field(None, max_length=50)
    children: list[ChildData] = Field(..., min_length=1)
    personal_data: Optional[PersonalData] = None
    set_as_primary: bool = False

    @field_validator("club_invite_code")
    @classmethod
    def normalize_code(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_invite_code(v)


class ClubCoachPayload(CamelModel):
    role: Literal["club_coach"] = "club_coach"
    club_id: int = Field(..., gt=0)
    personal_data: Optional[PersonalData] = None
    set_as_primary: bool = False


OnboardingPayload = Union[
    ClubManagerPayload, MemberPayload, ParentPayload, ClubCoachPayload
]

OnboardingRequest = Annotated[OnboardingPayload, Field(discriminator="role")]


class CoachAssignmentRequest(CamelModel):
    user_id: int = Field(..., gt=0)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class AccountSummary(CamelModel):
    account_number: str
    role: RoleKind
    club_id: Optional[int] = None
    club_name: Optional[str] = None
    is_active: bool = True
    onboarding_completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class UserSummary(CamelModel):
    id: int
    email: Optional[str] = None
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    primary_role: Optional[RoleKind] = None
    is_onboarded: bool = False


class OnboardingResult(CamelModel):
    success: bool = True
    account_number: str
    account: AccountSummary
    user: UserSummary
    club_id: Optional[int] = None
    children_ids: list[int] = Field(default_factory=list)
    accounts: list[AccountSummary] = Field(default_factory=list)
    message: str
