"""Onboarding Service schemas package."""

from services.onboarding_service.schemas.accounts import (  # noqa: F401
    AccountDetail,
    AccountLookupResponse,
    AccountOwner,
    AccountSearchResponse,
    AccountSearchResult,
    GenerateAccountNumberRequest,
    GeneratedAccountNumber,
)
from services.onboarding_service.schemas.invites import (  # noqa: F401
    ClubSummary,
    DeactivateResponse,
    InviteCodeCreate,
    InviteCodeResponse,
    InvitePreview,
    InviteValidation,
)
from services.onboarding_service.schemas.onboarding import (  # noqa: F401
    AccountSummary,
    ChildData,
    ClubCoachPayload,
    ClubManagerPayload,
    CoachAssignmentRequest,
    MemberPayload,
    OnboardingPayload,
    OnboardingRequest,
    OnboardingResult,
    ParentPayload,
    PersonalData,
    UserSummary,
)
from services.onboarding_service.schemas.status import (  # noqa: F401
    ChildCreate,
    ChildResponse,
    ChildrenResponse,
    CompletionProgressBreakdown,
    CompletionSummary,
    CompletionUpdate,
    CompletionUpdateResponse,
    OnboardingStatus,
    PrimaryRoleResponse,
    ProfileCompletion,
    RecommendedAction,
    RoleDeactivationResponse,
    RoleProgress,
    RoleSelection,
    UserStatus,
)
