"""Password hashing utilities using bcrypt."""
from __future__ import annotations

import bcrypt

from backoffice.config import get_settings


class PasswordValidationError(ValueError):
    """Raised when a password fails strength validation."""


def validate_password_strength(password: str) -> None:
    """Validate the staff password policy.

    Raises:
        PasswordValidationError: If the password is shorter than the
            configured minimum or made only of whitespace.
    """
    min_length = get_settings().min_password_length
    if not password or not password.strip():
        raise PasswordValidationError("Password must not be blank.")

    if len(password) < min_length:
        raise PasswordValidationError(f"Password must be at least {min_length} characters long.")


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    password_bytes = password.encode('utf-8')
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against a stored hash."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except (ValueError, TypeError, AttributeError):
        return False
