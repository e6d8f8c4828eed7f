"""Typed application errors shared by every service.

Service code raises these instead of ``HTTPException`` so the same failure
can be handled by a router, a script or a test. ``add_exception_handlers``
(libs.common.error_handler) turns them into JSON responses.
"""

from typing import Any, Optional


class AppError(Exception):
    """Base class for application errors."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        if error_code:
            self.error_code = error_code
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"detail": self.message, "code": self.error_code}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    """Malformed or missing input. Always fixable by the caller."""

    status_code = 422
    error_code = "VALIDATION_ERROR"
    default_message = "Validation failed"


class NotFoundError(AppError):
    status_code = 404
    error_code = "NOT_FOUND"
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    error_code = "CONFLICT"
    default_message = "Resource conflict"


class UnauthorizedError(AppError):
    """The caller is authenticated but lacks the required club relationship."""

    status_code = 403
    error_code = "UNAUTHORIZED"
    default_message = "You are not allowed to perform this action"


# ---------------------------------------------------------------------------
# Invite code terminal states
# ---------------------------------------------------------------------------


class InviteCodeError(AppError):
    """Base for invite codes that can no longer be redeemed."""

    status_code = 410
    error_code = "INVITE_CODE_INVALID"
    default_message = "Invite code can no longer be used"


class ExpiredError(InviteCodeError):
    error_code = "INVITE_CODE_EXPIRED"
    default_message = "Invite code has expired"


class ExhaustedError(InviteCodeError):
    status_code = 409
    error_code = "INVITE_CODE_EXHAUSTED"
    default_message = "Invite code usage limit reached"


class DeactivatedError(InviteCodeError):
    error_code = "INVITE_CODE_INACTIVE"
    default_message = "Invite code is no longer active"


# ---------------------------------------------------------------------------
# Retry-safe infrastructure failures
# ---------------------------------------------------------------------------


class TransientError(AppError):
    """Safe to retry: lock timeout, busy database, unique-key collision streak."""

    status_code = 503
    error_code = "TRANSIENT_ERROR"
    default_message = "Temporary failure, please retry"


class AccountNumberExhaustedError(TransientError):
    error_code = "ACCOUNT_NUMBER_EXHAUSTED"
    default_message = "Could not allocate a unique account number"
