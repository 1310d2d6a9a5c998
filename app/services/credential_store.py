from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session, undefer_group

from app.models.user import CREDENTIALS_GROUP, User


class CredentialStore:
    """
    Persistence boundary for identities.

    Password hash, 2FA secret and lockout counters are deferred columns and
    are only selected when a caller passes with_secrets=True.
    """

    def __init__(self, db: Session):
        self.db = db

    def _query(self, with_secrets: bool):
        query = self.db.query(User)
        if with_secrets:
            query = query.options(undefer_group(CREDENTIALS_GROUP))
        return query

    def find_by_email(self, email: str, with_secrets: bool = False) -> Optional[User]:
        return self._query(with_secrets).filter(User.email == email).first()

    def find_by_id(self, user_id: UUID | str, with_secrets: bool = False) -> Optional[User]:
        if isinstance(user_id, str):
            try:
                user_id = UUID(user_id)
            except ValueError:
                return None
        return self._query(with_secrets).filter(User.id == user_id).first()

    def save(self, user: User) -> User:
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def list_all(self) -> list[User]:
        return self.db.query(User).order_by(User.created_at.desc()).all()
