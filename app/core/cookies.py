"""Cookie transport for session tokens. Tokens never travel in JSON bodies."""

from fastapi import Response

from app.core.config import AuthConfig

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"
TWO_FACTOR_PENDING_COOKIE = "twoFactorPending"

ACCESS_COOKIE_PATH = "/"
# Each cookie is only sent to the one route that reads it. Logout clears the
# refresh cookie by name and path, so it never needs to receive it.
REFRESH_COOKIE_PATH = "/api/auth/refresh"
TWO_FACTOR_PENDING_COOKIE_PATH = "/api/auth/2fa/login"


def _set(response: Response, key: str, value: str, max_age: int, path: str, config: AuthConfig) -> None:
    response.set_cookie(
        key=key,
        value=value,
        max_age=max_age,
        path=path,
        domain=config.cookie_domain,
        secure=True,
        httponly=True,
        samesite="strict",
    )


def _clear(response: Response, key: str, path: str, config: AuthConfig) -> None:
    response.delete_cookie(
        key=key,
        path=path,
        domain=config.cookie_domain,
        secure=True,
        httponly=True,
        samesite="strict",
    )


def set_access_cookie(response: Response, token: str, config: AuthConfig) -> None:
    _set(
        response,
        ACCESS_TOKEN_COOKIE,
        token,
        int(config.access_token_lifetime.total_seconds()),
        ACCESS_COOKIE_PATH,
        config,
    )


def set_refresh_cookie(response: Response, token: str, config: AuthConfig) -> None:
    _set(
        response,
        REFRESH_TOKEN_COOKIE,
        token,
        int(config.refresh_token_lifetime.total_seconds()),
        REFRESH_COOKIE_PATH,
        config,
    )


def set_two_factor_pending_cookie(response: Response, token: str, config: AuthConfig) -> None:
    _set(
        response,
        TWO_FACTOR_PENDING_COOKIE,
        token,
        int(config.two_factor_pending_lifetime.total_seconds()),
        TWO_FACTOR_PENDING_COOKIE_PATH,
        config,
    )


def clear_access_cookie(response: Response, config: AuthConfig) -> None:
    _clear(response, ACCESS_TOKEN_COOKIE, ACCESS_COOKIE_PATH, config)


def clear_refresh_cookie(response: Response, config: AuthConfig) -> None:
    _clear(response, REFRESH_TOKEN_COOKIE, REFRESH_COOKIE_PATH, config)


def clear_two_factor_pending_cookie(response: Response, config: AuthConfig) -> None:
    _clear(response, TWO_FACTOR_PENDING_COOKIE, TWO_FACTOR_PENDING_COOKIE_PATH, config)
