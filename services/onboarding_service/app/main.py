"""FastAPI application for the Onboarding Service."""

from fastapi import FastAPI
from libs.common.error_handler import add_exception_handlers
from libs.common.middleware import add_observability_middleware
from libs.common.rate_limit import limiter, rate_limit_exceeded_handler
from services.onboarding_service.routers import (
    accounts_router,
    clubs_router,
    invites_router,
    onboarding_router,
)
from slowapi.errors import RateLimitExceeded


def create_app() -> FastAPI:
    """Create and configure the Onboarding Service FastAPI app."""
    app = FastAPI(
        title="Onboarding Service",
        version="0.1.0",
        description="Role-based onboarding, account numbers and club invite codes.",
    )

    add_observability_middleware(app)
    add_exception_handlers(app)

    # Add rate limiter state to app
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "onboarding"}

    app.include_router(onboarding_router)
    app.include_router(accounts_router)
    app.include_router(clubs_router)
    app.include_router(invites_router)

    return app


app = create_app()
