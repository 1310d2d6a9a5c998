"""Tests for password hashing and token issuance."""

from dataclasses import replace
from datetime import timedelta
from uuid import uuid4

import pytest

from app.core.config import auth_config
from app.core.exceptions import TokenExpiredError, TokenInvalidError
from app.core.security import (
    create_access_token,
    create_refresh_token,
    create_two_factor_pending_token,
    decode_access_token,
    decode_refresh_token,
    decode_two_factor_pending_token,
    get_password_hash,
    pwd_context,
    utcnow,
    verify_password,
)
from app.models.user import Role, User


@pytest.fixture
def user():
    return User(id=uuid4(), username="alice", email="a@x.com", role=Role.USER, token_version=3)


class TestPasswordHashing:

    def test_correct_password_verifies(self):
        hashed = get_password_hash("secret1")

        assert verify_password("secret1", hashed)

    @pytest.mark.parametrize("attempt", ["", "secret", "secret12", "Secret1", " secret1"])
    def test_other_strings_fail(self, attempt):
        hashed = get_password_hash("secret1")

        assert not verify_password(attempt, hashed)

    def test_hashes_are_salted(self):
        assert get_password_hash("secret1") != get_password_hash("secret1")

    def test_hash_is_bcrypt_sha256(self):
        assert get_password_hash("secret1").startswith("$bcrypt-sha256$")

    def test_bytes_past_72_are_significant(self):
        hashed = get_password_hash("p" * 72 + "correct-tail")

        assert verify_password("p" * 72 + "correct-tail", hashed)
        assert not verify_password("p" * 72 + "different-tail", hashed)
        assert not verify_password("p" * 72, hashed)

    def test_longer_attempt_does_not_match_shorter_password(self):
        hashed = get_password_hash("p" * 72)

        assert not verify_password("p" * 72 + "extra", hashed)

    def test_legacy_bcrypt_hash_still_verifies(self):
        legacy = pwd_context.handler("bcrypt").using(rounds=4).hash("secret1")

        assert verify_password("secret1", legacy)
        assert not verify_password("secret2", legacy)


class TestAccessToken:

    def test_round_trip(self, user):
        payload = decode_access_token(create_access_token(user, auth_config), auth_config)

        assert payload["sub"] == str(user.id)
        assert payload["role"] == "user"
        assert payload["aud"] == auth_config.audience
        assert payload["iss"] == auth_config.issuer
        assert payload["exp"] - payload["iat"] == 15 * 60

    def test_expired(self, user):
        token = create_access_token(user, auth_config, now=utcnow() - timedelta(minutes=16))

        with pytest.raises(TokenExpiredError):
            decode_access_token(token, auth_config)

    def test_still_valid_just_before_expiry(self, user):
        token = create_access_token(user, auth_config, now=utcnow() - timedelta(minutes=14))

        assert decode_access_token(token, auth_config)["sub"] == str(user.id)

    def test_wrong_audience(self, user):
        token = create_access_token(user, replace(auth_config, audience="other-api"))

        with pytest.raises(TokenInvalidError):
            decode_access_token(token, auth_config)

    def test_wrong_issuer(self, user):
        token = create_access_token(user, replace(auth_config, issuer="someone-else"))

        with pytest.raises(TokenInvalidError):
            decode_access_token(token, auth_config)

    def test_wrong_key(self, user):
        token = create_access_token(
            user, replace(auth_config, access_signing_key="another-secret-of-sufficient-length")
        )

        with pytest.raises(TokenInvalidError):
            decode_access_token(token, auth_config)

    def test_tampered(self, user):
        token = create_access_token(user, auth_config)
        header, payload, signature = token.split(".")
        tampered = ".".join([header, payload, signature[:-4] + "AAAA"])

        with pytest.raises(TokenInvalidError):
            decode_access_token(tampered, auth_config)


class TestRefreshToken:

    def test_round_trip(self, user):
        payload = decode_refresh_token(create_refresh_token(user, auth_config), auth_config)

        assert payload["sub"] == str(user.id)
        assert payload["version"] == 3
        assert payload["exp"] - payload["iat"] == 7 * 24 * 60 * 60

    def test_expired(self, user):
        token = create_refresh_token(user, auth_config, now=utcnow() - timedelta(days=7, seconds=1))

        with pytest.raises(TokenExpiredError):
            decode_refresh_token(token, auth_config)

    def test_keys_are_not_interchangeable(self, user):
        with pytest.raises(TokenInvalidError):
            decode_refresh_token(create_access_token(user, auth_config), auth_config)
        with pytest.raises(TokenInvalidError):
            decode_access_token(create_refresh_token(user, auth_config), auth_config)


class TestTwoFactorPendingToken:

    def test_round_trip(self, user):
        token = create_two_factor_pending_token(user, auth_config)

        assert decode_two_factor_pending_token(token, auth_config)["sub"] == str(user.id)

    def test_not_usable_as_access_token(self, user):
        token = create_two_factor_pending_token(user, auth_config)

        with pytest.raises(TokenInvalidError):
            decode_access_token(token, auth_config)

    def test_expires_after_five_minutes(self, user):
        token = create_two_factor_pending_token(user, auth_config, now=utcnow() - timedelta(minutes=6))

        with pytest.raises(TokenExpiredError):
            decode_two_factor_pending_token(token, auth_config)
