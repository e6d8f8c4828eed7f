"""Account number lookup, search and administrative generation."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from libs.auth.dependencies import get_current_user, require_admin
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.common.rate_limit import admin_limit, search_limit
from libs.db.session import get_async_db
from services.onboarding_service.models import RoleKind
from services.onboarding_service.schemas import (
    AccountLookupResponse,
    AccountSearchResponse,
    GenerateAccountNumberRequest,
    GeneratedAccountNumber,
)
from services.onboarding_service.services import account_numbers
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.post(
    "/generate",
    response_model=GeneratedAccountNumber,
    status_code=status.HTTP_201_CREATED,
)
@admin_limit
async def generate_account_number(
    request: Request,
    body: GenerateAccountNumberRequest,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Draw an unused account number. Nothing is reserved."""
    number = await account_numbers.generate_account_number(db)
    logger.info(
        "Generated account number for user %s (%s)", body.user_id, body.role.value
    )
    return GeneratedAccountNumber(account_number=number)


@router.get("/search", response_model=AccountSearchResponse)
@search_limit
async def search_accounts(
    request: Request,
    q: str = Query(..., min_length=1, max_length=100),
    role: Optional[RoleKind] = None,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return AccountSearchResponse(
        accounts=await account_numbers.search_accounts(db, q, role=role)
    )


@router.get("/{account_number}", response_model=AccountLookupResponse)
async def get_account(
    account_number: str,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await account_numbers.get_account_by_number(db, account_number)
