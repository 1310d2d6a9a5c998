from app.services.auth_service import AuthService
from app.services.credential_store import CredentialStore

__all__ = [
    "AuthService",
    "CredentialStore",
]
