"""
Application error taxonomy and the handlers that render it as JSON.

Every error renders as ``{"error": <message>, "details": <details>}``.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(AppError):
    """Missing or malformed required input."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthError(AppError):
    """Missing, malformed or expired bearer token."""

    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidCredentials(AuthError):
    """Email/password pair rejected. Same payload for unknown email and bad password."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(AppError):
    """Resource absent, or owned by someone else."""

    status_code = status.HTTP_404_NOT_FOUND


class PayloadTooLarge(AppError):
    status_code = 413


class DependencyError(AppError):
    """Database or object storage failure."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def error_body(message: str, details: Optional[Any] = None) -> dict:
    return {"error": message, "details": details}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = None
    if isinstance(exc, AuthError) and exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.details})")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.details),
        headers=headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"field": ".".join(str(part) for part in err.get("loc", ())[1:]), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("Invalid request", details),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
