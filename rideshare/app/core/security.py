"""
Password hashing helpers.

Uses bcrypt directly; passwords are limited to 72 bytes by the schemas.
"""

import bcrypt

from rideshare.app.core.config import settings


def get_password_hash(password: str) -> str:
    """Hash a plain-text password with a fresh salt."""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plain-text password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed hash in storage
        return False
