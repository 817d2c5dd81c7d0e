"""
Global exception handling for the application.
Every error leaves the API in the standard response envelope
(statusCode, message, data=null, validationErrors).
"""

from typing import Any, Dict, List, Optional

import structlog
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.responses import error_response

logger = structlog.get_logger(__name__)


class AppError(Exception):
    """Base class for all application exceptions."""
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        validation_errors: Optional[List[Dict[str, Any]]] = None,
    ):
        self.message = message
        self.validation_errors = validation_errors or []
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed input or business-rule violation."""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Validation failed", validation_errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, validation_errors)


class AuthError(AppError):
    """Credential or token failure."""
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Unauthorized", validation_errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, validation_errors)


class AuthorizationError(AppError):
    """Role or ownership denial."""
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Access denied", validation_errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, validation_errors)


class NotFoundError(AppError):
    """Resource not found error."""
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "Resource not found", validation_errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, validation_errors)


class ConflictError(AppError):
    """Uniqueness or capacity conflict."""
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str = "Conflict", validation_errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, validation_errors)


def integrity_detail(exc: IntegrityError) -> str:
    """The driver message, lower-cased; it names the violated constraint or columns."""
    return str(exc.orig).lower() if exc.orig is not None else str(exc).lower()


def conflict_from_integrity_error(exc: IntegrityError, fields: tuple = ("email", "phone")) -> ConflictError:
    """Translate a store uniqueness violation into a ConflictError naming the field."""
    detail = integrity_detail(exc)
    for field in fields:
        if field in detail:
            return ConflictError(
                f"{field.capitalize()} already registered",
                [{"field": field, "message": f"{field} already exists", "value": None}],
            )
    return ConflictError("Resource already exists")


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    logger.info(
        "Request rejected",
        error=exc.__class__.__name__,
        message=exc.message,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.message, exc.status_code, exc.validation_errors),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({
            "field": ".".join(loc) or "unknown",
            "message": err.get("msg", "Invalid value"),
            "value": err.get("input") if isinstance(err.get("input"), (str, int, float, bool)) else None,
        })
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_response("Validation failed", status.HTTP_400_BAD_REQUEST, errors),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(str(exc.detail), exc.status_code),
        headers=getattr(exc, "headers", None),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    conflict = conflict_from_integrity_error(exc)
    logger.warning("Unhandled integrity error mapped to conflict", path=request.url.path)
    return JSONResponse(
        status_code=conflict.status_code,
        content=error_response(conflict.message, conflict.status_code, conflict.validation_errors),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all uncaught exceptions globally."""
    logger.exception("Unexpected error occurred", path=request.url.path)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response(
            "An unexpected error occurred. Please try again later.",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        ),
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)
