"""Account lookup schemas."""

from datetime import datetime
from typing import Optional

from pydantic import Field
from services.onboarding_service.models.enums import RoleKind
from services.onboarding_service.schemas.common import CamelModel


class AccountDetail(CamelModel):
    account_number: str
    user_id: int
    role: RoleKind
    club_id: Optional[int] = None
    club_name: Optional[str] = None
    is_active: bool
    created_at: datetime
    onboarding_completed_at: Optional[datetime] = None


class AccountOwner(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None


class AccountLookupResponse(CamelModel):
    account: AccountDetail
    user: AccountOwner


class AccountSearchResult(CamelModel):
    account_number: str
    user_full_name: str
    role: RoleKind
    club_name: Optional[str] = None
    is_active: bool
    created_at: datetime


class AccountSearchResponse(CamelModel):
    accounts: list[AccountSearchResult] = Field(default_factory=list)


class GenerateAccountNumberRequest(CamelModel):
    user_id: int
    role: RoleKind
    club_id: Optional[int] = None


class GeneratedAccountNumber(CamelModel):
    success: bool = True
    account_number: str
    message: str = "Account number generated successfully"
