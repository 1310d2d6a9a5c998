"""Tests for the client session and its proactive refresh job."""

from datetime import timedelta

import pyotp
import pytest
from apscheduler.schedulers.background import BackgroundScheduler

from app.client import AuthSession, SessionError
from app.core import totp
from app.services.auth_service import AuthService
from app.services.credential_store import CredentialStore


@pytest.fixture
def scheduler():
    # Paused so jobs are registered but never fire during a test
    scheduler = BackgroundScheduler()
    scheduler.start(paused=True)
    yield scheduler
    scheduler.shutdown(wait=False)


@pytest.fixture
def terminated():
    return []


@pytest.fixture
def session(client, scheduler, terminated):
    auth_session = AuthSession(client, scheduler=scheduler, on_terminated=lambda: terminated.append(True))
    yield auth_session
    auth_session.close()


def _wrong_code(secret):
    return str((int(totp.current_code(secret)) + 500000) % 1000000).zfill(6)


class TestLogin:

    def test_login_schedules_refresh(self, session, scheduler, registered_user, test_user_credentials):
        user = session.login(**test_user_credentials)

        assert user["email"] == "a@x.com"
        assert session.is_authenticated
        job = scheduler.get_job(session.refresh_job_id)
        assert job is not None
        assert job.trigger.interval == timedelta(minutes=14)

    def test_rejected_login_raises(self, session, scheduler, registered_user):
        with pytest.raises(SessionError) as exc_info:
            session.login("a@x.com", "wrong-password")

        assert exc_info.value.status_code == 401
        assert exc_info.value.error_code == "INVALID_CREDENTIALS"
        assert not session.is_authenticated
        assert scheduler.get_job(session.refresh_job_id) is None

    def test_repeated_login_keeps_single_job(self, session, scheduler, registered_user, test_user_credentials):
        session.login(**test_user_credentials)
        session.login(**test_user_credentials)

        assert len(scheduler.get_jobs()) == 1

    def test_check_resumes_session(self, client, scheduler, registered_user, test_user_credentials):
        client.post("/api/auth/login", json=test_user_credentials)
        resumed = AuthSession(client, scheduler=scheduler)

        assert resumed.check()
        assert resumed.user["email"] == "a@x.com"
        assert scheduler.get_job(resumed.refresh_job_id) is not None
        resumed.close()

    def test_check_without_cookies(self, session, scheduler):
        assert not session.check()
        assert scheduler.get_job(session.refresh_job_id) is None


class TestRefresh:

    def test_refresh_succeeds(self, session, registered_user, test_user_credentials, terminated):
        session.login(**test_user_credentials)

        assert session.refresh()
        assert session.is_authenticated
        assert terminated == []

    def test_failed_refresh_terminates(self, session, scheduler, db_session, registered_user,
                                       test_user_credentials, terminated):
        session.login(**test_user_credentials)
        # Logout from another device moves the token version on
        AuthService.logout(db_session, CredentialStore(db_session).find_by_email("a@x.com"))

        assert not session.refresh()
        assert terminated == [True]
        assert not session.is_authenticated
        assert scheduler.get_job(session.refresh_job_id) is None
        assert len(session.http.cookies) == 0


class TestTeardown:

    def test_logout_cancels_refresh(self, session, scheduler, client, registered_user, test_user_credentials):
        session.login(**test_user_credentials)
        session.logout()

        assert scheduler.get_job(session.refresh_job_id) is None
        assert not session.is_authenticated
        assert client.get("/api/auth/me").status_code == 401

    def test_close_cancels_refresh(self, session, scheduler, registered_user, test_user_credentials):
        session.login(**test_user_credentials)
        session.close()

        assert scheduler.get_job(session.refresh_job_id) is None

    def test_owned_scheduler_is_shut_down(self, client):
        auth_session = AuthSession(client)
        assert auth_session.scheduler.running

        auth_session.close()

        assert not auth_session.scheduler.running


class TestTwoFactor:

    @pytest.fixture
    def secret(self, db_session, registered_user):
        secret = pyotp.random_base32()
        user = CredentialStore(db_session).find_by_email("a@x.com")
        AuthService.confirm_two_factor_enrollment(db_session, user, secret, totp.current_code(secret))
        return secret

    def test_login_signals_second_step(self, session, scheduler, secret, test_user_credentials):
        assert session.login(**test_user_credentials) is None

        assert session.pending_two_factor_email == "a@x.com"
        assert scheduler.get_job(session.refresh_job_id) is None

    def test_second_step_completes_login(self, session, scheduler, secret, test_user_credentials):
        session.login(**test_user_credentials)

        user = session.complete_two_factor(totp.current_code(secret))

        assert user["email"] == "a@x.com"
        assert session.pending_two_factor_email is None
        assert scheduler.get_job(session.refresh_job_id) is not None

    def test_wrong_codes_count_down(self, session, secret, test_user_credentials):
        session.login(**test_user_credentials)

        for remaining in (2, 1):
            with pytest.raises(SessionError) as exc_info:
                session.complete_two_factor(_wrong_code(secret))
            assert exc_info.value.error_code == "INVALID_TWO_FACTOR"
            assert session.remaining_two_factor_attempts == remaining

        with pytest.raises(SessionError):
            session.complete_two_factor(_wrong_code(secret))
        assert session.pending_two_factor_email is None

        with pytest.raises(SessionError) as exc_info:
            session.complete_two_factor(totp.current_code(secret))
        assert exc_info.value.status_code == 400

    def test_code_with_password(self, session, secret, test_user_credentials):
        user = session.login(**test_user_credentials, totp_code=totp.current_code(secret))

        assert user["email"] == "a@x.com"
