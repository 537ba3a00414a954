"""
Error taxonomy for the session/credential lifecycle.

Every error carries the HTTP status and the machine code the transport layer
answers with (see api.errors). Token problems all collapse to a bare 401 so
callers never learn which check failed.
"""
from __future__ import annotations


class AuthError(Exception):
    status = 401
    code = "UNAUTHORIZED"
    public_message = "Unauthorized"


class TokenError(AuthError):
    pass


class MalformedToken(TokenError):
    pass


class SignatureInvalid(TokenError):
    pass


class TokenExpired(TokenError):
    pass


class SessionNotFound(AuthError):
    pass


class SessionMismatch(AuthError):
    """A superseded refresh token was replayed; the session has been revoked."""
    status = 403
    code = "SESSION_INVALIDATED"
    public_message = "Forbidden: session invalidated"


class CSRFMismatch(AuthError):
    pass


class StoreFailure(AuthError):
    status = 500
    code = "INTERNAL_ERROR"
    public_message = "Internal server error"


class TokenIssueError(AuthError):
    status = 500
    code = "INTERNAL_ERROR"
    public_message = "Internal server error"


class IdentityError(AuthError):
    public_message = "Invalid credential"


class IdentityNotFound(IdentityError):
    pass


class BadCredential(IdentityError):
    pass
