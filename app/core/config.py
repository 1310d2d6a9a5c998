from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"

    # Database
    DATABASE_URL: str

    # JWT - access and refresh tokens are signed with different keys
    ACCESS_TOKEN_SECRET: str
    REFRESH_TOKEN_SECRET: str
    ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str = "technest-api"
    JWT_ISSUER: str = "technest"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    TWO_FACTOR_PENDING_EXPIRE_MINUTES: int = 5

    # Cookies
    COOKIE_DOMAIN: Optional[str] = None

    # Passwords and lockout
    BCRYPT_ROUNDS: int = 10
    MIN_PASSWORD_LENGTH: int = 6
    LOCKOUT_THRESHOLD: int = 5
    LOCKOUT_DURATION_MINUTES: int = 120

    # Two-factor authentication
    TOTP_ISSUER: str = "TechNest"
    TOTP_VALID_WINDOW: int = 1

    # Registration
    ALLOW_ADMIN_REGISTRATION: bool = False

    # CORS
    FRONTEND_URL: str = "http://localhost:3000"

    # Encryption key for 2FA secrets at rest (Fernet key)
    ENCRYPTION_KEY: str = ""

    def validate_required_secrets(self) -> list[str]:
        """Validate that critical secrets are set. Returns list of errors."""
        errors = []
        if not self.ACCESS_TOKEN_SECRET or len(self.ACCESS_TOKEN_SECRET) < 16:
            errors.append("ACCESS_TOKEN_SECRET must be set and at least 16 characters")
        if not self.REFRESH_TOKEN_SECRET or len(self.REFRESH_TOKEN_SECRET) < 16:
            errors.append("REFRESH_TOKEN_SECRET must be set and at least 16 characters")
        if self.ACCESS_TOKEN_SECRET and self.ACCESS_TOKEN_SECRET == self.REFRESH_TOKEN_SECRET:
            errors.append("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ")
        if not self.DATABASE_URL:
            errors.append("DATABASE_URL must be set")
        if not self.ENCRYPTION_KEY:
            errors.append("ENCRYPTION_KEY must be set")
        return errors

    class Config:
        env_file = ".env"
        case_sensitive = True


@dataclass(frozen=True)
class AuthConfig:
    """Signing keys and token parameters, built once at start-up."""

    access_signing_key: str
    refresh_signing_key: str
    audience: str
    issuer: str
    cookie_domain: Optional[str] = None
    algorithm: str = "HS256"
    access_token_lifetime: timedelta = timedelta(minutes=15)
    refresh_token_lifetime: timedelta = timedelta(days=7)
    two_factor_pending_lifetime: timedelta = timedelta(minutes=5)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthConfig":
        return cls(
            access_signing_key=settings.ACCESS_TOKEN_SECRET,
            refresh_signing_key=settings.REFRESH_TOKEN_SECRET,
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
            cookie_domain=settings.COOKIE_DOMAIN or None,
            algorithm=settings.ALGORITHM,
            access_token_lifetime=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
            refresh_token_lifetime=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
            two_factor_pending_lifetime=timedelta(
                minutes=settings.TWO_FACTOR_PENDING_EXPIRE_MINUTES
            ),
        )


settings = Settings()
auth_config = AuthConfig.from_settings(settings)
