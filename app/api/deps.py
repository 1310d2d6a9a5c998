from dataclasses import dataclass
from typing import Callable, Generator, Optional
from uuid import UUID

from fastapi import Cookie, Depends, Request
from sqlalchemy.orm import Session

from app.core.config import AuthConfig, auth_config
from app.core.cookies import ACCESS_TOKEN_COOKIE
from app.core.database import SessionLocal
from app.core.exceptions import (
    AuthenticationRequiredError,
    AuthorizationError,
    TechNestException,
)
from app.core.security import decode_access_token
from app.models.user import Role, User
from app.services.credential_store import CredentialStore


@dataclass(frozen=True)
class IdentityContext:
    """What downstream handlers may know about the caller."""

    id: UUID
    role: Role


def get_db() -> Generator:
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_auth_config() -> AuthConfig:
    """Immutable auth configuration built at start-up."""
    return auth_config


def _authenticate(
    request: Request,
    token: Optional[str],
    db: Session,
    config: AuthConfig,
) -> tuple[IdentityContext, User]:
    if not token:
        raise AuthenticationRequiredError()

    try:
        payload = decode_access_token(token, config)
    except TechNestException:
        raise AuthenticationRequiredError()

    # A token whose subject no longer exists is not valid
    user = CredentialStore(db).find_by_id(payload["sub"])
    if user is None:
        raise AuthenticationRequiredError()

    identity = IdentityContext(id=user.id, role=Role(payload["role"]))
    request.state.user = identity
    request.state.current_user = user
    return identity, user


def get_current_identity(
    request: Request,
    access_token: Optional[str] = Cookie(default=None, alias=ACCESS_TOKEN_COOKIE),
    db: Session = Depends(get_db),
    config: AuthConfig = Depends(get_auth_config),
) -> IdentityContext:
    """
    Dependency to get the caller's identity from the access token cookie.
    Raises AuthenticationRequiredError if the token is missing or invalid.
    """
    identity, _ = _authenticate(request, access_token, db, config)
    return identity


def get_current_user(
    request: Request,
    identity: IdentityContext = Depends(get_current_identity),
) -> User:
    """Dependency returning the persisted record behind the current identity."""
    return request.state.current_user


def require_role(role: Role) -> Callable[..., IdentityContext]:
    """
    Dependency factory for role-gated routes.
    The check uses the role attached by get_current_identity.
    """

    def checker(identity: IdentityContext = Depends(get_current_identity)) -> IdentityContext:
        if identity.role != role:
            raise AuthorizationError(f"{role.value.capitalize()} access required")
        return identity

    return checker


require_admin = require_role(Role.ADMIN)
