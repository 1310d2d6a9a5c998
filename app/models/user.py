import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Enum, Integer, String, Uuid
from sqlalchemy.orm import deferred

from app.core.database import Base


class Role(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


# Columns in this group are only loaded when explicitly requested
CREDENTIALS_GROUP = "credentials"


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    username = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    role = Column(
        Enum(Role, name="user_role", native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=Role.USER,
    )
    is_two_factor_enabled = Column(Boolean, nullable=False, default=False)
    token_version = Column(Integer, nullable=False, default=0)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    password_hash = deferred(Column(String(255), nullable=False), group=CREDENTIALS_GROUP)
    two_factor_secret = deferred(Column(String(255), nullable=True), group=CREDENTIALS_GROUP)  # Fernet ciphertext
    failed_login_attempts = deferred(
        Column(Integer, nullable=False, default=0), group=CREDENTIALS_GROUP
    )
    lock_until = deferred(Column(DateTime, nullable=True), group=CREDENTIALS_GROUP)

    def is_locked(self, now: datetime) -> bool:
        return self.lock_until is not None and self.lock_until > now

    def __repr__(self):
        return f"<User {self.email}>"
