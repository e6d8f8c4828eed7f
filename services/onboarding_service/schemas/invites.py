"""Invite code request/response schemas."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import Field
from services.onboarding_service.models.enums import ClubType, RoleKind
from services.onboarding_service.schemas.common import CamelModel


class InviteCodeCreate(CamelModel):
    role: Literal["member", "parent"] = "member"
    expires_at: Optional[datetime] = None
    usage_limit: Optional[int] = Field(None, gt=0)
    description: Optional[str] = Field(None, max_length=1000)


class InviteCodeResponse(CamelModel):
    id: int
    code: str
    club_id: int
    role: RoleKind
    created_by: int
    is_active: bool
    expires_at: Optional[datetime] = None
    usage_limit: Optional[int] = None
    used_count: int
    remaining_uses: Optional[int] = None
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ClubSummary(CamelModel):
    id: int
    name: str
    club_type: ClubType
    description: Optional[str] = None
    logo_url: Optional[str] = None
    member_count: int = 0


class InviteValidation(CamelModel):
    valid: bool
    message: str
    reason: Optional[str] = None
    club: Optional[ClubSummary] = None
    role: Optional[RoleKind] = None
    expires_at: Optional[datetime] = None
    usage_limit: Optional[int] = None
    used_count: Optional[int] = None
    remaining_uses: Optional[int] = None


class InvitePreview(CamelModel):
    valid: bool
    club: Optional[ClubSummary] = None
    role: Optional[RoleKind] = None
    user_can_join: bool
    already_member: bool
    message: str


class DeactivateResponse(CamelModel):
    success: bool = True
    message: str
