"""
Password hashing for user accounts.
"""

from typing import Optional

import bcrypt

from api.config import config

# bcrypt only looks at the first 72 bytes of a secret
BCRYPT_MAX_BYTES = 72


def _secret(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """
    Hash a password with a fresh salt.

    Args:
        password: Plain text password
        rounds: bcrypt cost factor, defaults to the configured one

    Returns:
        The bcrypt hash as text
    """
    if rounds is None:
        rounds = config.bcrypt_rounds
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_secret(password), salt).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    """Check a plain text password against a stored bcrypt hash."""
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(_secret(password), hashed_password.encode("utf-8"))
    except ValueError:
        # stored value is not a bcrypt hash
        return False
