#!/usr/bin/env python3
"""
Create an admin account. Admins cannot self-register through the API.
Run with: python -m scripts.create_admin <username> <email> <password>
"""

import argparse
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.database import SessionLocal
from app.core.exceptions import TechNestException
from app.core.sanitization import sanitize_email, sanitize_username
from app.models.user import Role
from app.services.auth_service import AuthService


def create_admin(username: str, email: str, password: str) -> int:
    db = SessionLocal()
    try:
        user = AuthService.register(
            db,
            sanitize_username(username),
            sanitize_email(email),
            password,
            role=Role.ADMIN,
        )
    except TechNestException as e:
        print(f"Could not create admin: {e.detail}")
        return 1
    finally:
        db.close()

    print(f"Created admin {user.email} ({user.id})")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create a TechNest admin account")
    parser.add_argument("username")
    parser.add_argument("email")
    parser.add_argument("password")
    args = parser.parse_args()
    sys.exit(create_admin(args.username, args.email, args.password))
