from datetime import datetime, timezone
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from app.core.config import AuthConfig, settings
from app.core.exceptions import TokenExpiredError, TokenInvalidError
from app.models.user import Role, User

# bcrypt alone ignores everything past 72 bytes; bcrypt_sha256 digests the
# whole password first. Plain bcrypt hashes still verify.
pwd_context = CryptContext(
    schemes=["bcrypt_sha256", "bcrypt"],
    deprecated="auto",
    bcrypt_sha256__rounds=settings.BCRYPT_ROUNDS,
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

# Token type constants
TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"
TOKEN_TYPE_TWO_FACTOR_PENDING = "2fa_pending"


def utcnow() -> datetime:
    """Naive UTC now, matching how timestamps are stored on the identity."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a hashed password."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password with bcrypt over its SHA-256 digest."""
    return pwd_context.hash(password)


def _encode(claims: dict, key: str, config: AuthConfig, lifetime, now: Optional[datetime]) -> str:
    issued_at = now or utcnow()
    to_encode = dict(claims)
    to_encode.update({
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "aud": config.audience,
        "iss": config.issuer,
    })
    return jwt.encode(to_encode, key, algorithm=config.algorithm)


def create_access_token(user: User, config: AuthConfig, now: Optional[datetime] = None) -> str:
    """Create a short-lived access token carrying the subject and role."""
    return _encode(
        {"sub": str(user.id), "role": user.role.value, "type": TOKEN_TYPE_ACCESS},
        config.access_signing_key,
        config,
        config.access_token_lifetime,
        now,
    )


def create_refresh_token(user: User, config: AuthConfig, now: Optional[datetime] = None) -> str:
    """
    Create a refresh token bound to the identity's current token version.
    Signed with the refresh key so a leaked access key cannot forge it.
    """
    return _encode(
        {"sub": str(user.id), "version": user.token_version, "type": TOKEN_TYPE_REFRESH},
        config.refresh_signing_key,
        config,
        config.refresh_token_lifetime,
        now,
    )


def create_two_factor_pending_token(
    user: User, config: AuthConfig, now: Optional[datetime] = None
) -> str:
    """
    Create a short-lived token proving the password step succeeded.
    Exchanged for real tokens once the TOTP code is verified.
    """
    return _encode(
        {"sub": str(user.id), "type": TOKEN_TYPE_TWO_FACTOR_PENDING},
        config.access_signing_key,
        config,
        config.two_factor_pending_lifetime,
        now,
    )


def _decode(token: str, key: str, config: AuthConfig, expected_type: str) -> dict:
    """
    Verify signature, expiry, audience, issuer and token type.
    Raises TokenExpiredError or TokenInvalidError.
    """
    try:
        payload = jwt.decode(
            token,
            key,
            algorithms=[config.algorithm],
            audience=config.audience,
            issuer=config.issuer,
        )
    except ExpiredSignatureError:
        raise TokenExpiredError()
    except JWTError:
        raise TokenInvalidError()

    if payload.get("type") != expected_type or not payload.get("sub"):
        raise TokenInvalidError()

    return payload


def decode_access_token(token: str, config: AuthConfig) -> dict:
    payload = _decode(token, config.access_signing_key, config, TOKEN_TYPE_ACCESS)
    if payload.get("role") not in {role.value for role in Role}:
        raise TokenInvalidError()
    return payload


def decode_refresh_token(token: str, config: AuthConfig) -> dict:
    payload = _decode(token, config.refresh_signing_key, config, TOKEN_TYPE_REFRESH)
    if not isinstance(payload.get("version"), int):
        raise TokenInvalidError()
    return payload


def decode_two_factor_pending_token(token: str, config: AuthConfig) -> dict:
    return _decode(token, config.access_signing_key, config, TOKEN_TYPE_TWO_FACTOR_PENDING)
