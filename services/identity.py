"""
Identity verification: resolves email + password to a user via argon2.
"""
from __future__ import annotations

from dataclasses import dataclass

from models.user import User
from utils.exceptions import BadCredential, IdentityNotFound
from utils.security import verify_password


@dataclass(frozen=True)
class Identity:
    user_id: str
    user_name: str
    email: str


def verify_credentials(session, email: str, password: str) -> Identity:
    """Raise IdentityNotFound / BadCredential, or return the matched identity."""
    user = session.query(User).filter(User.email == email).first()
    if user is None:
        raise IdentityNotFound(email)
    if not verify_password(password, user.password_hash):
        raise BadCredential(user.id)
    return Identity(user_id=user.id, user_name=user.user_name, email=user.email)
