"""Encryption at rest for two-factor secrets."""

import logging
from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken

from app.core.config import settings

logger = logging.getLogger(__name__)


@lru_cache
def get_fernet() -> Fernet:
    """Fernet instance keyed by ENCRYPTION_KEY."""
    if not settings.ENCRYPTION_KEY:
        raise ValueError(
            "ENCRYPTION_KEY is not set. Generate one with: "
            "python -c 'from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())'"
        )
    return Fernet(settings.ENCRYPTION_KEY.encode())


def encrypt_secret(secret: str) -> str:
    """Encrypt a TOTP secret for storage on the identity record."""
    return get_fernet().encrypt(secret.encode()).decode()


def decrypt_secret(stored: str) -> str:
    """Decrypt a stored TOTP secret. Raises ValueError if the key changed."""
    try:
        return get_fernet().decrypt(stored.encode()).decode()
    except InvalidToken:
        logger.error("Failed to decrypt two-factor secret: invalid token or key mismatch")
        raise ValueError("Stored two-factor secret cannot be decrypted")
