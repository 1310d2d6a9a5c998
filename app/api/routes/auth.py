import logging
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.api.deps import get_auth_config, get_current_user, get_db
from app.core.config import AuthConfig, settings
from app.core.cookies import (
    REFRESH_TOKEN_COOKIE,
    TWO_FACTOR_PENDING_COOKIE,
    clear_access_cookie,
    clear_refresh_cookie,
    clear_two_factor_pending_cookie,
    set_access_cookie,
    set_refresh_cookie,
    set_two_factor_pending_cookie,
)
from app.core.exceptions import (
    InvalidTwoFactorError,
    TechNestException,
    TwoFactorRequiredError,
    ValidationError,
    build_error_response,
)
from app.core.rate_limit import limiter
from app.core.sanitization import (
    sanitize_email,
    sanitize_username,
    validate_email,
    validate_username,
)
from app.core.security import (
    create_access_token,
    create_refresh_token,
    create_two_factor_pending_token,
    decode_two_factor_pending_token,
)
from app.models.user import Role, User
from app.schemas.auth import (
    AuthCheckResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    TwoFactorLoginRequest,
    TwoFactorSetupResponse,
    TwoFactorVerifyRequest,
    UserDetailResponse,
    UserResponse,
)
from app.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

# Refresh failures after which the stored refresh cookie is useless
REFRESH_COOKIE_CLEARING_CODES = {"REFRESH_TOKEN_EXPIRED", "REFRESH_TOKEN_INVALID"}


def _start_session(response: Response, user: User, config: AuthConfig) -> None:
    """Issue access and refresh tokens as cookies."""
    set_access_cookie(response, create_access_token(user, config), config)
    set_refresh_cookie(response, create_refresh_token(user, config), config)
    clear_two_factor_pending_cookie(response, config)


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")  # Strict rate limit for registration
def register(
    request: Request,
    data: RegisterRequest,
    db: Session = Depends(get_db),
):
    """
    Register a new account.
    Tokens are not issued here; the client logs in afterwards.
    """
    username = sanitize_username(data.username)
    email = sanitize_email(data.email)

    if not validate_username(username):
        raise ValidationError("Username contains invalid characters")
    if not validate_email(email):
        raise ValidationError("Invalid email format")
    if data.role == Role.ADMIN and not settings.ALLOW_ADMIN_REGISTRATION:
        raise ValidationError("Admin accounts cannot be self-registered")

    user = AuthService.register(db, username, email, data.password, data.role)
    return RegisterResponse(user=UserResponse.model_validate(user))


@router.post("/login", response_model=UserResponse)
@limiter.limit("10/minute")  # Strict rate limit for login
def login(
    request: Request,
    response: Response,
    data: LoginRequest,
    db: Session = Depends(get_db),
    config: AuthConfig = Depends(get_auth_config),
):
    """
    Authenticate with email and password (plus TOTP code when enabled).
    On success the access and refresh cookies are set.
    """
    email = sanitize_email(data.email)

    try:
        user = AuthService.login(db, email, data.password, data.totp_code)
    except TwoFactorRequiredError as exc:
        # Not a failure: remember the password step so the code can follow alone
        pending = build_error_response(exc)
        set_two_factor_pending_cookie(
            pending, create_two_factor_pending_token(exc.user, config), config
        )
        return pending

    _start_session(response, user, config)
    return UserResponse.model_validate(user)


@router.post("/2fa/login", response_model=UserResponse)
@limiter.limit("10/minute")
def two_factor_login(
    request: Request,
    response: Response,
    data: TwoFactorLoginRequest,
    pending_token: Optional[str] = Cookie(default=None, alias=TWO_FACTOR_PENDING_COOKIE),
    db: Session = Depends(get_db),
    config: AuthConfig = Depends(get_auth_config),
):
    """Complete a login that stopped at the two-factor step."""
    session_expired = "Two-factor session has expired. Please log in again."
    if not pending_token:
        raise InvalidTwoFactorError(session_expired)
    try:
        payload = decode_two_factor_pending_token(pending_token, config)
    except TechNestException:
        raise InvalidTwoFactorError(session_expired)

    user = AuthService.complete_two_factor_login(
        db, payload["sub"], sanitize_email(data.email), data.token
    )

    _start_session(response, user, config)
    return UserResponse.model_validate(user)


@router.post("/refresh", response_model=MessageResponse)
@limiter.limit("30/minute")
def refresh(
    request: Request,
    response: Response,
    refresh_token: Optional[str] = Cookie(default=None, alias=REFRESH_TOKEN_COOKIE),
    db: Session = Depends(get_db),
    config: AuthConfig = Depends(get_auth_config),
):
    """
    Issue a new access token from the refresh cookie.
    The refresh token is not rotated.
    """
    try:
        access_token = AuthService.refresh_access_token(db, refresh_token, config)
    except TechNestException as exc:
        error: JSONResponse = build_error_response(exc)
        if exc.error_code in REFRESH_COOKIE_CLEARING_CODES:
            clear_refresh_cookie(error, config)
        return error

    set_access_cookie(response, access_token, config)
    return MessageResponse(message="Token refreshed successfully")


@router.post("/logout", response_model=MessageResponse)
def logout(
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    config: AuthConfig = Depends(get_auth_config),
):
    """
    Invalidate every refresh token of the current user and clear cookies.
    """
    AuthService.logout(db, current_user)

    clear_access_cookie(response, config)
    clear_refresh_cookie(response, config)
    return MessageResponse(message="Logged out successfully")


@router.get("/check", response_model=AuthCheckResponse)
def check(current_user: User = Depends(get_current_user)):
    """Session probe used by clients on start-up."""
    return AuthCheckResponse(user=UserResponse.model_validate(current_user))


@router.get("/me", response_model=UserDetailResponse)
def me(current_user: User = Depends(get_current_user)):
    """Get current authenticated user's info."""
    return UserDetailResponse.model_validate(current_user)


@router.post("/2fa/generate", response_model=TwoFactorSetupResponse)
def generate_two_factor_secret(current_user: User = Depends(get_current_user)):
    """
    Step one of enrollment: return a fresh secret and provisioning URI.
    Nothing is stored until the code is verified.
    """
    secret, uri = AuthService.start_two_factor_enrollment(current_user)
    return TwoFactorSetupResponse(secret=secret, qrCode=uri)


@router.post("/2fa/verify", response_model=MessageResponse)
def verify_two_factor_setup(
    data: TwoFactorVerifyRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Step two of enrollment: prove possession of the secret, then enable 2FA."""
    AuthService.confirm_two_factor_enrollment(db, current_user, data.secret, data.token)
    return MessageResponse(message="Two-factor authentication enabled")
