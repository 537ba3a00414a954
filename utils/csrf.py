"""
CSRF binder: the CSRF token is an HMAC of the refresh session id.
Nothing is stored; the server recomputes it from the session id carried by
an already verified refresh token.
"""
from __future__ import annotations

import hashlib
import hmac


class CSRFBinder:
    def __init__(self, secret: str):
        if not secret:
            raise ValueError("csrf secret must not be empty")
        self._key = secret.encode("utf-8")

    def derive(self, session_id: str) -> str:
        # length prefix keeps distinct ids from colliding on concatenation
        message = f"{len(session_id)}!{session_id}".encode("utf-8")
        return hmac.new(self._key, message, hashlib.sha256).hexdigest()

    def check(self, presented: str, session_id: str) -> bool:
        """Constant-time comparison; any error counts as a mismatch."""
        if not presented or not session_id:
            return False
        try:
            expected = self.derive(session_id)
            return hmac.compare_digest(expected.encode("ascii"), presented.encode("ascii"))
        except (TypeError, ValueError, UnicodeError):
            return False
