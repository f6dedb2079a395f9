"""Password hashing and one-time token utilities.

Uses bcrypt for password hashing. bcrypt automatically handles salting;
the work factor (rounds=12) takes ~100ms per hash on modern hardware.
"""

import secrets

import bcrypt


def hash_password(password: str) -> str:
    """Hash a password with bcrypt.

    Passwords are truncated to 72 bytes (bcrypt's limit).
    """
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash."""
    try:
        pw_bytes = password.encode("utf-8")[:72]
        hash_bytes = password_hash.encode("utf-8")
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except (ValueError, TypeError):
        return False


def generate_random_token() -> str:
    """64 hex chars, used for email verification links."""
    return secrets.token_hex(32)
