import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import AuthConfig, settings
from app.core.encryption import decrypt_secret, encrypt_secret
from app.core.exceptions import (
    AccountLockedError,
    DuplicateResourceError,
    InvalidCredentialsError,
    InvalidTwoFactorError,
    RefreshTokenMissingError,
    ServerError,
    TokenExpiredError,
    TokenInvalidError,
    TwoFactorRequiredError,
    ValidationError,
)
from app.core.security import (
    create_access_token,
    decode_refresh_token,
    get_password_hash,
    utcnow,
    verify_password,
)
from app.core.totp import generate_secret, verify_code
from app.models.user import Role, User
from app.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)


def validate_password_strength(password: str) -> None:
    """Validate password meets minimum requirements. Raises ValidationError if weak."""
    if not password or len(password) < settings.MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters long"
        )


class AuthService:
    """Service for handling authentication business logic."""

    @staticmethod
    def register(
        db: Session,
        username: str,
        email: str,
        password: str,
        role: Role = Role.USER,
    ) -> User:
        """
        Create a new identity with a bcrypt password hash.
        Raises ValidationError for weak passwords and DuplicateResourceError
        if the email is taken.
        """
        validate_password_strength(password)

        store = CredentialStore(db)
        if store.find_by_email(email):
            raise DuplicateResourceError(detail="User already exists")

        user = User(
            username=username,
            email=email,
            password_hash=get_password_hash(password),
            role=role,
            is_two_factor_enabled=False,
            failed_login_attempts=0,
            token_version=0,
        )
        try:
            user = store.save(user)
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email
            db.rollback()
            raise DuplicateResourceError(detail="User already exists")
        logger.info(f"Registered user {user.id} with role {role.value}")
        return user

    @staticmethod
    def login(
        db: Session,
        email: str,
        password: str,
        totp_code: Optional[str] = None,
    ) -> User:
        """
        Check the password, lockout state and (if enabled) the TOTP code.

        Returns the authenticated user. Raises InvalidCredentialsError,
        AccountLockedError, TwoFactorRequiredError or InvalidTwoFactorError.
        """
        now = utcnow()
        store = CredentialStore(db)
        user = store.find_by_email(email, with_secrets=True)
        if not user:
            raise InvalidCredentialsError()

        # A locked account is rejected without consuming another attempt
        if user.is_locked(now):
            raise AccountLockedError(user.lock_until)

        if not verify_password(password, user.password_hash):
            AuthService._record_failed_attempt(store, user, now)
            raise InvalidCredentialsError()

        # Reset on password success, before the second factor is checked.
        # Wrong TOTP codes therefore never count toward lockout.
        if user.failed_login_attempts or user.lock_until is not None:
            user.failed_login_attempts = 0
            user.lock_until = None
            store.save(user)

        if user.is_two_factor_enabled:
            if not totp_code:
                raise TwoFactorRequiredError(user=user)
            AuthService._check_totp(user, totp_code)

        return AuthService._complete_login(store, user, now)

    @staticmethod
    def complete_two_factor_login(
        db: Session,
        pending_user_id: str,
        email: str,
        code: str,
    ) -> User:
        """
        Second step of a login whose password step already succeeded.
        pending_user_id comes from a verified two-factor pending token.
        """
        now = utcnow()
        store = CredentialStore(db)
        user = store.find_by_id(pending_user_id, with_secrets=True)
        if not user or user.email != email or not user.is_two_factor_enabled:
            raise InvalidTwoFactorError("Two-factor session is invalid. Please log in again.")

        if user.is_locked(now):
            raise AccountLockedError(user.lock_until)

        AuthService._check_totp(user, code)
        return AuthService._complete_login(store, user, now)

    @staticmethod
    def _check_totp(user: User, code: str) -> None:
        try:
            secret = decrypt_secret(user.two_factor_secret)
        except ValueError:
            raise ServerError("Two-factor authentication is misconfigured for this account")
        if not verify_code(code, secret):
            logger.info(f"Rejected 2FA code for user {user.id}")
            raise InvalidTwoFactorError()

    @staticmethod
    def _record_failed_attempt(store: CredentialStore, user: User, now: datetime) -> None:
        """Count a failed password check and lock the account at the threshold."""
        if user.lock_until is not None and user.lock_until <= now:
            # Previous lock has lapsed; start counting again
            user.failed_login_attempts = 0
            user.lock_until = None

        user.failed_login_attempts = (user.failed_login_attempts or 0) + 1

        if user.failed_login_attempts >= settings.LOCKOUT_THRESHOLD:
            user.lock_until = now + timedelta(minutes=settings.LOCKOUT_DURATION_MINUTES)
            store.save(user)
            logger.warning(
                f"Locked user {user.id} until {user.lock_until.isoformat()} "
                f"after {user.failed_login_attempts} failed attempts"
            )
            raise AccountLockedError(user.lock_until)

        store.save(user)
        logger.info(f"Failed login for user {user.id} ({user.failed_login_attempts} attempts)")

    @staticmethod
    def _complete_login(store: CredentialStore, user: User, now: datetime) -> User:
        user.last_login = now
        user = store.save(user)
        logger.info(f"User {user.id} logged in")
        return user

    @staticmethod
    def refresh_access_token(db: Session, refresh_token: Optional[str], config: AuthConfig) -> str:
        """
        Mint a new access token from a refresh token. The refresh token
        itself is not rotated; it stays valid until it expires or the
        identity's token version moves on.
        """
        if not refresh_token:
            raise RefreshTokenMissingError()

        try:
            payload = decode_refresh_token(refresh_token, config)
        except TokenExpiredError:
            raise TokenExpiredError(
                detail="Refresh token has expired. Please login again.",
                error_code="REFRESH_TOKEN_EXPIRED",
            )

        user = CredentialStore(db).find_by_id(payload["sub"])
        if not user or user.token_version != payload["version"]:
            logger.info(f"Rejected refresh token for subject {payload['sub']}")
            raise TokenInvalidError(
                detail="Invalid refresh token",
                error_code="REFRESH_TOKEN_INVALID",
            )

        return create_access_token(user, config)

    @staticmethod
    def logout(db: Session, user: User) -> User:
        """Bump the token version, invalidating every outstanding refresh token."""
        # Increment in SQL so concurrent logouts never move the version backwards
        user.token_version = User.token_version + 1
        user = CredentialStore(db).save(user)
        logger.info(f"User {user.id} logged out, token version now {user.token_version}")
        return user

    @staticmethod
    def start_two_factor_enrollment(user: User) -> tuple[str, str]:
        """Generate a secret and provisioning URI. Nothing is persisted yet."""
        if user.is_two_factor_enabled:
            raise ValidationError("Two-factor authentication is already enabled")
        return generate_secret(user.email)

    @staticmethod
    def confirm_two_factor_enrollment(db: Session, user: User, secret: str, code: str) -> User:
        """Persist the secret and enable 2FA once the user proves possession of it."""
        if user.is_two_factor_enabled:
            raise ValidationError("Two-factor authentication is already enabled")
        if not verify_code(code, secret):
            raise InvalidTwoFactorError("Invalid verification code")

        user.two_factor_secret = encrypt_secret(secret)
        user.is_two_factor_enabled = True
        user = CredentialStore(db).save(user)
        logger.info(f"Enabled two-factor authentication for user {user.id}")
        return user