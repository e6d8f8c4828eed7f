"""Onboarding service routers."""

from services.onboarding_service.routers.accounts import router as accounts_router
from services.onboarding_service.routers.invites import clubs_router
from services.onboarding_service.routers.invites import router as invites_router
from services.onboarding_service.routers.onboarding import router as onboarding_router

__all__ = [
    "accounts_router",
    "clubs_router",
    "invites_router",
    "onboarding_router",
]
