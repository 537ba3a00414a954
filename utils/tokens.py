"""
Token codec:
- signs claim sets as JWTs via PyJWT, pinned to a single algorithm (HS512)
- verifies signature / expiry and classifies failures
- decodes access and refresh payloads into typed claim sets
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import jwt

from utils.exceptions import MalformedToken, SignatureInvalid, TokenExpired, TokenIssueError

DEFAULT_ALGORITHM = "HS512"


def _to_datetime(value: int) -> datetime:
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


@dataclass(frozen=True)
class AccessClaims:
    issued_at: datetime
    expires_at: datetime

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "AccessClaims":
        return cls(
            issued_at=_to_datetime(payload["iat"]),
            expires_at=_to_datetime(payload["exp"]),
        )


@dataclass(frozen=True)
class RefreshClaims:
    user_id: str
    session_id: str
    issued_at: datetime
    expires_at: datetime
    user_name: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "RefreshClaims":
        user_id = payload.get("user_id")
        session_id = payload.get("session_id")
        if not isinstance(user_id, str) or not user_id:
            raise MalformedToken("refresh token missing user_id")
        if not isinstance(session_id, str) or not session_id:
            raise MalformedToken("refresh token missing session_id")
        user_name = payload.get("user_name")
        if user_name is not None and not isinstance(user_name, str):
            raise MalformedToken("refresh token user_name must be a string")
        return cls(
            user_id=user_id,
            session_id=session_id,
            issued_at=_to_datetime(payload["iat"]),
            expires_at=_to_datetime(payload["exp"]),
            user_name=user_name,
        )


class TokenCodec:
    """Signs and verifies expiring JWTs with one secret and one algorithm."""

    def __init__(self, secret: str, algorithm: str = DEFAULT_ALGORITHM):
        if not secret:
            raise ValueError("token secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm

    @property
    def algorithm(self) -> str:
        return self._algorithm

    def issue(self, claims: Dict[str, Any], expires_at: datetime,
              issued_at: Optional[datetime] = None) -> str:
        """Encode claims plus iat/exp. Raises TokenIssueError on any failure."""
        issued_at = issued_at or datetime.now(timezone.utc)
        payload = dict(claims)
        payload["iat"] = int(issued_at.timestamp())
        payload["exp"] = int(expires_at.timestamp())
        try:
            return jwt.encode(payload, self._secret, algorithm=self._algorithm)
        except (TypeError, ValueError, jwt.PyJWTError) as exc:
            raise TokenIssueError(f"could not sign token: {exc}") from exc

    def verify(self, token: str) -> Dict[str, Any]:
        """
        Verify a token and return its payload.
        Raises MalformedToken, SignatureInvalid or TokenExpired.
        """
        if not token or not isinstance(token, str):
            raise MalformedToken("token is empty")
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat"]},
                leeway=0,
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpired("token expired") from exc
        except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError) as exc:
            raise SignatureInvalid(f"invalid signature: {exc}") from exc
        except jwt.InvalidTokenError as exc:
            raise MalformedToken(f"invalid token: {exc}") from exc

    def decode_access(self, token: str) -> AccessClaims:
        return AccessClaims.from_payload(self.verify(token))

    def decode_refresh(self, token: str) -> RefreshClaims:
        return RefreshClaims.from_payload(self.verify(token))
