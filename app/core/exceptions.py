"""Custom exceptions and error handling for TechNest API."""

from datetime import datetime
from typing import Any

from fastapi import HTTPException, status
from fastapi.responses import JSONResponse


class TechNestException(HTTPException):
    """Base exception for TechNest API."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: str | None = None,
        extra: dict[str, Any] | None = None,
    ):
        super().__init__(status_code=status_code, detail=detail)
        self.error_code = error_code
        self.extra = extra or {}


# Validation Errors (400)
class ValidationError(TechNestException):
    """Raised when input validation fails."""

    def __init__(self, detail: str = "Invalid input"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code="VALIDATION_ERROR",
        )


class DuplicateResourceError(TechNestException):
    """Raised when trying to create a resource that already exists."""

    def __init__(self, resource: str = "Resource", detail: str | None = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail or f"{resource} already exists",
            error_code="DUPLICATE_RESOURCE",
        )


# Authentication Errors (401, 403, 423)
class InvalidCredentialsError(TechNestException):
    """Raised when login credentials are invalid."""

    def __init__(self, detail: str = "Invalid credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="INVALID_CREDENTIALS",
        )


class AccountLockedError(TechNestException):
    """Raised when login is attempted on a locked account."""

    def __init__(
        self,
        lock_until: datetime,
        detail: str = "Account is locked. Please try again later.",
    ):
        super().__init__(
            status_code=status.HTTP_423_LOCKED,
            detail=detail,
            error_code="ACCOUNT_LOCKED",
            extra={"lockUntil": lock_until.isoformat() + "Z"},
        )
        self.lock_until = lock_until


class TwoFactorRequiredError(TechNestException):
    """Signals that the password was correct but a TOTP code is still needed."""

    def __init__(self, user: Any = None, detail: str = "Two-factor authentication required"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code="TWO_FACTOR_REQUIRED",
            extra={"requiresTwoFactor": True},
        )
        self.user = user


class InvalidTwoFactorError(TechNestException):
    """Raised when a TOTP code does not verify."""

    def __init__(self, detail: str = "Invalid 2FA code"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="INVALID_TWO_FACTOR",
        )


class TokenExpiredError(TechNestException):
    """Raised when JWT token has expired."""

    def __init__(self, detail: str = "Token has expired", error_code: str = "TOKEN_EXPIRED"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code=error_code,
        )


class TokenInvalidError(TechNestException):
    """Raised when JWT token is invalid."""

    def __init__(self, detail: str = "Invalid token", error_code: str = "INVALID_TOKEN"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code=error_code,
        )


class RefreshTokenMissingError(TechNestException):
    """Raised when the refresh endpoint is called without a refresh cookie."""

    def __init__(self, detail: str = "No refresh token provided"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="REFRESH_TOKEN_MISSING",
        )


class AuthenticationRequiredError(TechNestException):
    """Raised when a protected route is called without a valid access token."""

    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="AUTHENTICATION_REQUIRED",
        )


class AuthorizationError(TechNestException):
    """Raised when user lacks the role required for an action."""

    def __init__(self, detail: str = "You do not have permission to perform this action"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code="FORBIDDEN",
        )


# Server Errors (500)
class ServerError(TechNestException):
    """Raised for unexpected server errors."""

    def __init__(self, detail: str = "An unexpected error occurred"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            error_code="INTERNAL_ERROR",
        )


def build_error_response(exc: TechNestException) -> JSONResponse:
    """Render an exception as the API's JSON error body."""
    content = {
        "detail": exc.detail,
        "error_code": exc.error_code,
    }
    content.update(exc.extra)
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)
