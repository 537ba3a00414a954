from __future__ import annotations
from functools import wraps
from flask import request, g, current_app


def get_session_manager():
    return current_app.extensions["session_manager"]


def read_token_cookies():
    """Return (access_token, refresh_token) from the request cookies."""
    cfg = current_app.config
    return request.cookies.get(cfg["ACCESS_COOKIE_NAME"]), request.cookies.get(cfg["REFRESH_COOKIE_NAME"])


def session_required():
    """
    Require valid access and refresh cookies.
    Attaches the refresh claims as g.session_claims; token errors reach the
    AuthError handler and become a bare 401.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            access_token, refresh_token = read_token_cookies()
            g.session_claims = get_session_manager().authenticate(access_token, refresh_token)
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def csrf_required():
    """
    Require the CSRF header to match the session id of the refresh cookie.
    Missing header, bad refresh token and mismatch all raise CSRFMismatch.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            header = request.headers.get(current_app.config["CSRF_HEADER_NAME"], "")
            _, refresh_token = read_token_cookies()
            g.session_claims = get_session_manager().require_csrf(header, refresh_token)
            return fn(*args, **kwargs)

        return wrapper

    return decorator
