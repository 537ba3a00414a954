"""
Cookie helpers: write the issued triple onto a response, or expire it.
Attributes (Secure / SameSite / names) come from app config.
"""
from __future__ import annotations

from flask import current_app

from services.credentials import IssuedCredentials


def _attrs(httponly: bool) -> dict:
    cfg = current_app.config
    return {
        "path": "/",
        "httponly": httponly,
        "secure": cfg["COOKIE_SECURE"],
        "samesite": cfg["COOKIE_SAMESITE"],
    }


def send_tokens(response, issued: IssuedCredentials):
    """Set access, csrf and refresh cookies; refresh lives until its own exp."""
    cfg = current_app.config
    access_age = int((issued.access_expires_at - issued.issued_at).total_seconds())
    refresh_age = max(0, int((issued.refresh_expires_at - issued.issued_at).total_seconds()))

    response.set_cookie(cfg["ACCESS_COOKIE_NAME"], issued.access_token, max_age=access_age, **_attrs(True))
    response.set_cookie(
        cfg["CSRF_COOKIE_NAME"], issued.csrf_token, max_age=access_age, **_attrs(cfg["CSRF_COOKIE_HTTPONLY"])
    )
    response.set_cookie(cfg["REFRESH_COOKIE_NAME"], issued.refresh_token, max_age=refresh_age, **_attrs(True))
    return response


def clear_tokens(response):
    cfg = current_app.config
    response.delete_cookie(cfg["ACCESS_COOKIE_NAME"], **_attrs(True))
    response.delete_cookie(cfg["CSRF_COOKIE_NAME"], **_attrs(cfg["CSRF_COOKIE_HTTPONLY"]))
    response.delete_cookie(cfg["REFRESH_COOKIE_NAME"], **_attrs(True))
    return response
