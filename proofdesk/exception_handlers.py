"""
Global Exception Handlers for ProofDesk

The route boundary is the only place where typed service errors become HTTP
responses.

Error Response Format:
{
    "error": "SELECTION_SUBMITTED",
    "message": "Selection is submitted",
    "details": {"selection_id": 7},
    "path": "/api/p/galleries/3/selection/items"
}
"""

import logging
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from proofdesk.exceptions import (
    DomainStateError,
    ProofDeskError,
    StorageError,
    TenantScopeError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR_CODE: dict[str, int] = {
    # Scope
    "TENANT_SCOPE_MISSING": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "TENANT_REQUIRED": status.HTTP_400_BAD_REQUEST,
    "TENANT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    # Domain state
    "GALLERY_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "GALLERY_NOT_PRIVATE": status.HTTP_400_BAD_REQUEST,
    "PHOTO_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "SELECTION_SUBMITTED": status.HTTP_409_CONFLICT,
    "MAX_SELECTIONS_EXCEEDED": status.HTTP_409_CONFLICT,
    "SELECTION_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVALID_GALLERY_ACCESS": status.HTTP_400_BAD_REQUEST,
    "HOSTNAME_INVALID": status.HTTP_400_BAD_REQUEST,
    "NO_DOMAIN_CONNECTED": status.HTTP_400_BAD_REQUEST,
    "INVALID_SLUG": status.HTTP_400_BAD_REQUEST,
    "SLUG_TAKEN": status.HTTP_409_CONFLICT,
    "EMAIL_TAKEN": status.HTTP_409_CONFLICT,
    "PAYMENT_ACCOUNT_TAKEN": status.HTTP_409_CONFLICT,
    "TENANT_RECORD_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    # Storage
    "STORAGE_QUOTA_EXCEEDED": status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    "INVALID_BYTES": status.HTTP_400_BAD_REQUEST,
    "INVALID_SIGNATURE": status.HTTP_403_FORBIDDEN,
    # Auth
    "UNAUTHORIZED": status.HTTP_401_UNAUTHORIZED,
    "INVALID_CREDENTIALS": status.HTTP_401_UNAUTHORIZED,
    "BILLING_INACTIVE": status.HTTP_402_PAYMENT_REQUIRED,
    "FORBIDDEN": status.HTTP_403_FORBIDDEN,
}


def status_for_error(exc: ProofDeskError) -> int:
    return STATUS_BY_ERROR_CODE.get(exc.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)


def create_error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: dict[str, Any] | None = None,
    path: str | None = None,
) -> JSONResponse:
    content: dict[str, Any] = {"error": error_code, "message": message}
    if details:
        content["details"] = details
    if path:
        content["path"] = path
    return JSONResponse(status_code=status_code, content=content)


async def proofdesk_exception_handler(request: Request, exc: ProofDeskError) -> JSONResponse:
    status_code = status_for_error(exc)
    extra = {"error_code": exc.error_code, "path": request.url.path, "status_code": status_code}

    # Domain-state and storage errors are expected outcomes, not system failures
    if isinstance(exc, (DomainStateError, StorageError)):
        logger.info("%s: %s", exc.error_code, exc.message, extra=extra)
    elif isinstance(exc, TenantScopeError) and status_code < 500:
        logger.warning("%s: %s", exc.error_code, exc.message, extra=extra)
    elif status_code >= 500:
        logger.error("%s: %s", exc.error_code, exc.message, extra=extra)
    else:
        logger.info("%s: %s", exc.error_code, exc.message, extra=extra)

    return create_error_response(
        status_code=status_code,
        error_code=exc.error_code,
        message=exc.message,
        details=exc.details or None,
        path=request.url.path,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    logger.warning("HTTPException: %s", exc.detail, extra={"status_code": exc.status_code, "path": request.url.path})
    return create_error_response(
        status_code=exc.status_code,
        error_code=str(exc.detail) if isinstance(exc.detail, str) and exc.detail.isupper() else "HTTP_ERROR",
        message=str(exc.detail),
        path=request.url.path,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"] if loc != "body")
        errors.append({"field": field, "message": error["msg"], "type": error["type"]})

    logger.info("Validation error on %s", request.url.path, extra={"errors": errors})
    return create_error_response(
        status_code=status.HTTP_400_BAD_REQUEST,
        error_code="INVALID_BODY",
        message="Validation error",
        details={"validation_errors": errors},
        path=request.url.path,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception: %s",
        exc,
        exc_info=True,
        extra={"path": request.url.path, "method": request.method},
    )
    # Don't expose internal error details
    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code="INTERNAL_SERVER_ERROR",
        message="An unexpected error occurred. Please try again later.",
        path=request.url.path,
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(ProofDeskError, proofdesk_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
    logger.info("Exception handlers registered successfully")
