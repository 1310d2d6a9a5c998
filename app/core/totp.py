"""
Time-based one-time passwords for the second login factor.

Secrets are base32 strings compatible with authenticator apps; codes are
six digits on a 30-second step. Verification accepts the current step and
TOTP_VALID_WINDOW steps either side to tolerate clock skew.
"""
from datetime import datetime
from typing import Optional

import pyotp

from app.core.config import settings

TOTP_DIGITS = 6
TOTP_INTERVAL = 30


def generate_secret(account_name: str) -> tuple[str, str]:
    """
    Generate a new shared secret for an account.

    Returns (secret, provisioning_uri). The URI is the otpauth:// string
    rendered as a QR code by the client. Nothing is persisted here.
    """
    secret = pyotp.random_base32()
    uri = pyotp.TOTP(secret, digits=TOTP_DIGITS, interval=TOTP_INTERVAL).provisioning_uri(
        name=account_name,
        issuer_name=settings.TOTP_ISSUER,
    )
    return secret, uri


def verify_code(code: Optional[str], secret: str, for_time: Optional[datetime] = None) -> bool:
    """Check a code against the secret for the window around for_time (default now)."""
    if not code or not secret:
        return False
    code = code.strip().replace(" ", "")
    if len(code) != TOTP_DIGITS or not code.isdigit():
        return False

    try:
        totp = pyotp.TOTP(secret, digits=TOTP_DIGITS, interval=TOTP_INTERVAL)
        return totp.verify(code, for_time=for_time, valid_window=settings.TOTP_VALID_WINDOW)
    except (ValueError, TypeError):
        # Malformed base32 secret supplied by the client during enrollment
        return False


def current_code(secret: str, for_time: Optional[datetime] = None) -> str:
    """Code for the step containing for_time (default now)."""
    totp = pyotp.TOTP(secret, digits=TOTP_DIGITS, interval=TOTP_INTERVAL)
    return totp.at(for_time) if for_time else totp.now()
