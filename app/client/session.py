"""
Client-side session for the TechNest API.

Tokens live only in the HTTP client's cookie jar. After login a per-session
APScheduler job renews the access token shortly before it expires; if a
renewal fails the session is terminated and ``on_terminated`` is called so
the caller can send the user back to the login screen. The job is removed on
logout and on ``close()``.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import httpx
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.jobstores.base import JobLookupError

logger = logging.getLogger(__name__)

# One minute before a 15-minute access token expires
DEFAULT_REFRESH_INTERVAL = timedelta(minutes=14)
TWO_FACTOR_ATTEMPTS = 3


class SessionError(Exception):
    """A request made by the session was rejected by the API."""

    def __init__(self, status_code: int, detail: str, error_code: Optional[str] = None, body: Optional[dict] = None):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail
        self.error_code = error_code
        self.body = body or {}


class AuthSession:
    """One signed-in user of the API, with proactive token renewal."""

    def __init__(
        self,
        http: httpx.Client,
        scheduler: Optional[BackgroundScheduler] = None,
        refresh_interval: timedelta = DEFAULT_REFRESH_INTERVAL,
        on_terminated: Optional[Callable[[], None]] = None,
    ):
        self.http = http
        self.refresh_interval = refresh_interval
        self.on_terminated = on_terminated
        self.user: Optional[dict] = None
        self.pending_two_factor_email: Optional[str] = None
        self.remaining_two_factor_attempts = TWO_FACTOR_ATTEMPTS
        self.refresh_job_id = f"session_refresh_{uuid.uuid4().hex}"

        self._owns_scheduler = scheduler is None
        if scheduler is None:
            scheduler = BackgroundScheduler(job_defaults={"coalesce": True, "max_instances": 1})
            scheduler.start()
        self.scheduler = scheduler

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @staticmethod
    def _error(response: httpx.Response) -> SessionError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        return SessionError(
            response.status_code,
            body.get("detail", response.reason_phrase),
            body.get("error_code"),
            body,
        )

    def check(self) -> bool:
        """Resume an existing cookie session, e.g. on application start."""
        response = self.http.get("/api/auth/check")
        if response.status_code != 200:
            return False
        self._begin(response.json()["user"])
        return True

    def login(self, email: str, password: str, totp_code: Optional[str] = None) -> Optional[dict]:
        """
        Log in. Returns the user on success, or None when the account needs a
        two-factor code (call complete_two_factor next). Raises SessionError
        for any rejection, including a locked account.
        """
        payload = {"email": email, "password": password}
        if totp_code:
            payload["totpCode"] = totp_code

        response = self.http.post("/api/auth/login", json=payload)
        if response.status_code == 403 and response.json().get("requiresTwoFactor"):
            self.pending_two_factor_email = email
            self.remaining_two_factor_attempts = TWO_FACTOR_ATTEMPTS
            return None
        if response.status_code != 200:
            raise self._error(response)

        self._begin(response.json())
        return self.user

    def complete_two_factor(self, code: str) -> dict:
        """
        Send the TOTP code for a pending login. The remaining-attempts counter
        is a display aid only; the server does not enforce it.
        """
        if self.pending_two_factor_email is None:
            raise SessionError(400, "No two-factor login is pending")

        response = self.http.post(
            "/api/auth/2fa/login",
            json={"email": self.pending_two_factor_email, "token": code},
        )
        if response.status_code != 200:
            self.remaining_two_factor_attempts -= 1
            if self.remaining_two_factor_attempts <= 0:
                self.pending_two_factor_email = None
            raise self._error(response)

        self._begin(response.json())
        return self.user

    def refresh(self) -> bool:
        """Renew the access token. A failure ends the session."""
        try:
            response = self.http.post("/api/auth/refresh")
        except httpx.HTTPError as e:
            logger.error(f"Token refresh request failed: {e}")
            self._terminate()
            return False

        if response.status_code != 200:
            logger.info(f"Token refresh rejected with {response.status_code}, ending session")
            self._terminate()
            return False
        return True

    def logout(self) -> None:
        """Stop renewal, invalidate the session server-side and forget the user."""
        self._cancel_refresh_job()
        try:
            response = self.http.post("/api/auth/logout")
            if response.status_code != 200:
                logger.info(f"Logout returned {response.status_code}")
        except httpx.HTTPError as e:
            logger.error(f"Logout request failed: {e}")
        self._reset()

    def close(self) -> None:
        """Teardown without contacting the server."""
        self._cancel_refresh_job()
        if self._owns_scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def _begin(self, user: dict) -> None:
        self.user = user
        self.pending_two_factor_email = None
        self.remaining_two_factor_attempts = TWO_FACTOR_ATTEMPTS
        self._schedule_refresh_job()

    def _schedule_refresh_job(self) -> None:
        self.scheduler.add_job(
            self.refresh,
            "interval",
            seconds=int(self.refresh_interval.total_seconds()),
            id=self.refresh_job_id,
            replace_existing=True,
            next_run_time=datetime.now(timezone.utc) + self.refresh_interval,
        )
        logger.info(f"Scheduled token refresh every {self.refresh_interval}")

    def _cancel_refresh_job(self) -> None:
        try:
            self.scheduler.remove_job(self.refresh_job_id)
        except JobLookupError:
            pass

    def _reset(self) -> None:
        self.user = None
        self.pending_two_factor_email = None
        self.remaining_two_factor_attempts = TWO_FACTOR_ATTEMPTS
        self.http.cookies.clear()

    def _terminate(self) -> None:
        self._cancel_refresh_job()
        self._reset()
        if self.on_terminated is not None:
            self.on_terminated()
