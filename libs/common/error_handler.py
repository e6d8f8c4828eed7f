"""Global exception handlers for consistent error responses.

Usage:
    from libs.common.error_handler import add_exception_handlers

    app = FastAPI()
    add_exception_handlers(app)
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from libs.common.errors import AppError, TransientError
from libs.common.logging import get_logger, get_request_id

logger = get_logger(__name__)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render a typed application error."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "Request failed: %s",
        exc.message,
        extra={"extra_fields": {"error_code": exc.error_code, "status_code": exc.status_code}},
    )
    headers = {}
    request_id = get_request_id()
    if request_id:
        headers["X-Request-ID"] = request_id
    if isinstance(exc, TransientError):
        headers["Retry-After"] = "1"
    return JSONResponse(
        status_code=exc.status_code, content=exc.to_dict(), headers=headers
    )


async def operational_error_handler(
    request: Request, exc: OperationalError
) -> JSONResponse:
    """Lock timeouts and busy-database errors surface as retryable 503s."""
    logger.warning(
        "Database operational error",
        extra={"extra_fields": {"error": str(exc.orig) if exc.orig else str(exc)}},
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=TransientError().to_dict(),
        headers={"Retry-After": "1"},
    )


def add_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(OperationalError, operational_error_handler)
