"""Rate limiting configuration using slowapi."""

from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request


def get_user_identifier(request: Request) -> str:
    """
    Get identifier for rate limiting.
    Uses the identity id if authenticated, otherwise IP address.
    """
    # Set by the session dependencies in app.api.deps
    identity = getattr(request.state, "user", None)
    if identity and hasattr(identity, "id"):
        return f"user:{identity.id}"

    return get_remote_address(request)


# Auth endpoints are mostly unauthenticated, so this falls back to the client IP
limiter = Limiter(
    key_func=get_user_identifier,
    default_limits=["1000/minute"],
)
