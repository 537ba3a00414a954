"""
Credential issuer: mints the (access, refresh, csrf) triple for one identity.

Access and refresh expiries are computed independently. During rotation the
caller passes the session's absolute expiry so the new refresh token never
outlives the original login window.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from utils.csrf import CSRFBinder
from utils.exceptions import TokenIssueError
from utils.security import generate_session_id
from utils.tokens import TokenCodec


def utc_now() -> datetime:
    """Current UTC time truncated to whole seconds (JWT resolution)."""
    return datetime.now(timezone.utc).replace(microsecond=0)


@dataclass(frozen=True)
class IssuedCredentials:
    access_token: str
    refresh_token: str
    csrf_token: str
    session_id: str
    issued_at: datetime
    access_expires_at: datetime
    refresh_expires_at: datetime


class CredentialIssuer:
    def __init__(
        self,
        access_codec: TokenCodec,
        refresh_codec: TokenCodec,
        csrf_binder: CSRFBinder,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.access_codec = access_codec
        self.refresh_codec = refresh_codec
        self.csrf_binder = csrf_binder
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.clock = clock

    def issue(self, user_id: str, user_name: Optional[str] = None,
              expires_at: Optional[datetime] = None) -> IssuedCredentials:
        """
        Issue a fresh triple. expires_at overrides the refresh expiry (rotation);
        otherwise it is now + refresh_ttl (login). Raises TokenIssueError and
        returns nothing if any part fails.
        """
        now = self.clock()
        session_id = generate_session_id()
        refresh_expires_at = expires_at or now + self.refresh_ttl
        access_expires_at = now + self.access_ttl

        access_token = self.access_codec.issue({}, expires_at=access_expires_at, issued_at=now)

        refresh_claims = {"user_id": user_id, "session_id": session_id}
        if user_name is not None:
            refresh_claims["user_name"] = user_name
        refresh_token = self.refresh_codec.issue(refresh_claims, expires_at=refresh_expires_at, issued_at=now)

        try:
            csrf_token = self.csrf_binder.derive(session_id)
        except (TypeError, ValueError) as exc:
            raise TokenIssueError(f"could not derive csrf token: {exc}") from exc

        return IssuedCredentials(
            access_token=access_token,
            refresh_token=refresh_token,
            csrf_token=csrf_token,
            session_id=session_id,
            issued_at=now,
            access_expires_at=access_expires_at,
            refresh_expires_at=refresh_expires_at,
        )
