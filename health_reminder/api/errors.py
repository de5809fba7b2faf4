"""Exception handlers - render every failure as an ErrorResponse body"""

import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from health_reminder.core.exceptions import AuthenticationError, BaseAPIException
from health_reminder.core.metrics import AUTH_FAILURES
from health_reminder.schemas.response import ErrorResponse

logger = logging.getLogger(__name__)


def _error_response(
    request: Request,
    status_code: int,
    error: str,
    code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    body = ErrorResponse(error=error, code=code, details=details, path=request.url.path)
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


async def api_exception_handler(request: Request, exc: BaseAPIException):
    """Handle custom API exceptions, keeping each error kind distinct via `code`"""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        f"API Exception: {exc.message}",
        extra={
            "status_code": exc.status_code,
            "code": exc.code,
            "path": request.url.path,
            "method": request.method
        }
    )
    if isinstance(exc, AuthenticationError):
        AUTH_FAILURES.labels(exc.code or "unauthenticated").inc()

    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return _error_response(
        request, exc.status_code, exc.message, code=exc.code, details=exc.details, headers=headers
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors"""
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    # Field names only; request bodies carry passwords.
    logger.warning(
        "Validation error on fields: %s",
        [error["field"] for error in errors],
        extra={"path": request.url.path, "method": request.method}
    )
    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation failed",
        details={"fields": errors},
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    """Handle database errors"""
    logger.error(
        f"Database error: {exc.__class__.__name__}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "traceback": traceback.format_exc()
        }
    )
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "A database error occurred. Please try again later.",
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle all other exceptions"""
    logger.critical(
        f"Unhandled exception: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "traceback": traceback.format_exc()
        }
    )
    return _error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error occurred."
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BaseAPIException, api_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
