"""
Session lifecycle: login, logout, refresh rotation with reuse detection,
and CSRF enforcement.

Exactly one session per user is live at a time. The store record holds the
session id of the only refresh token that may be rotated; presenting any other
(already rotated-out) token for that user revokes the live session as well.
"""
from __future__ import annotations

import enum
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from models.session_store import SessionStore
from services.credentials import CredentialIssuer, IssuedCredentials, utc_now
from utils.csrf import CSRFBinder
from utils.exceptions import (
    CSRFMismatch,
    MalformedToken,
    SessionMismatch,
    SessionNotFound,
    TokenError,
    TokenExpired,
)
from utils.tokens import RefreshClaims, TokenCodec

logger = logging.getLogger(__name__)


class LogoutOutcome(enum.Enum):
    REVOKED = "revoked"
    NOT_CURRENT = "not_current"
    INVALID_TOKENS = "invalid_tokens"


class SessionManager:
    def __init__(
        self,
        store: SessionStore,
        issuer: CredentialIssuer,
        access_codec: TokenCodec,
        refresh_codec: TokenCodec,
        csrf_binder: CSRFBinder,
        refresh_ttl: timedelta,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.issuer = issuer
        self.access_codec = access_codec
        self.refresh_codec = refresh_codec
        self.csrf_binder = csrf_binder
        self.refresh_ttl = refresh_ttl
        self.clock = clock

    def login(self, user_id: str, user_name: Optional[str] = None) -> IssuedCredentials:
        """
        Start a new session for an already verified identity.
        Overwrites any previous session of the user. The record is persisted
        before the credentials are handed back; StoreFailure means nothing is issued.
        """
        issued = self.issuer.issue(user_id, user_name)
        self.store.put(user_id, issued.session_id, created_at=issued.issued_at)
        logger.info("session started for user %s", user_id)
        return issued

    def logout(self, access_token: Optional[str], refresh_token: Optional[str]) -> LogoutOutcome:
        """Revoke the presented session if it is still the live one. Never raises token errors."""
        if not access_token or not refresh_token:
            return LogoutOutcome.INVALID_TOKENS
        try:
            self.access_codec.verify(access_token)
            claims = self.refresh_codec.decode_refresh(refresh_token)
        except TokenError as exc:
            logger.debug("logout with unusable tokens: %s", exc)
            return LogoutOutcome.INVALID_TOKENS

        if self.store.delete_if_matches(claims.user_id, claims.session_id):
            logger.info("session revoked for user %s", claims.user_id)
            return LogoutOutcome.REVOKED
        logger.info("logout for user %s without a live session to revoke", claims.user_id)
        return LogoutOutcome.NOT_CURRENT

    def rotate(self, refresh_token: Optional[str]) -> IssuedCredentials:
        """
        Exchange the live refresh token for a new triple.

        Raises SessionNotFound when the user has no session, SessionMismatch
        (after revoking the live session) when a superseded token is replayed.
        The new refresh token keeps the absolute expiry of the original login.
        """
        if not refresh_token:
            raise MalformedToken("refresh token missing")
        claims = self.refresh_codec.decode_refresh(refresh_token)

        record = self.store.get(claims.user_id)
        if record is None:
            raise SessionNotFound(claims.user_id)
        if record.session_id != claims.session_id:
            self._revoke_on_reuse(claims)
            raise SessionMismatch(claims.user_id)

        absolute_expiry = record.created_at + self.refresh_ttl
        if absolute_expiry <= self.clock():
            self.store.delete_if_matches(claims.user_id, claims.session_id)
            raise TokenExpired("session lifetime exhausted")

        issued = self.issuer.issue(claims.user_id, claims.user_name, expires_at=absolute_expiry)
        if not self.store.swap(claims.user_id, claims.session_id, issued.session_id):
            # lost to a concurrent rotation of this token (same lineage) or to a new login (kept)
            if self.store.delete_lineage(claims.user_id, record.created_at):
                logger.warning("refresh token reuse detected for user %s; session revoked", claims.user_id)
            raise SessionMismatch(claims.user_id)
        logger.info("session rotated for user %s", claims.user_id)
        return issued

    def _revoke_on_reuse(self, claims: RefreshClaims) -> None:
        logger.warning("refresh token reuse detected for user %s; session revoked", claims.user_id)
        self.store.delete(claims.user_id)

    def require_csrf(self, csrf_token: Optional[str], refresh_token: Optional[str]) -> RefreshClaims:
        """Every failure is the same CSRFMismatch so the cause is never revealed."""
        if not csrf_token or not refresh_token:
            raise CSRFMismatch("csrf header or refresh token missing")
        try:
            claims = self.refresh_codec.decode_refresh(refresh_token)
        except TokenError as exc:
            raise CSRFMismatch("refresh token invalid") from exc
        if not self.csrf_binder.check(csrf_token, claims.session_id):
            raise CSRFMismatch("csrf token mismatch")
        return claims

    def authenticate(self, access_token: Optional[str], refresh_token: Optional[str]) -> RefreshClaims:
        """Verify both tokens and return the refresh claims identifying the caller."""
        if not access_token or not refresh_token:
            raise MalformedToken("access or refresh token missing")
        self.access_codec.verify(access_token)
        return self.refresh_codec.decode_refresh(refresh_token)
