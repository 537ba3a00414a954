"""
security helpers:
- Argon2 password hashing via argon2-cffi
- random session identifiers
"""
from __future__ import annotations

import secrets

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

ph = PasswordHasher()

SESSION_ID_BYTES = 32


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2
    """
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def generate_session_id() -> str:
    """Generate an opaque, unguessable refresh session id (hex).
    """
    return secrets.token_hex(SESSION_ID_BYTES)
