import pytest

from api.config import ProductionConfig, validate_config
from models.session_store import MemorySessionStore
from utils.exceptions import StoreFailure

from conftest import PASSWORD, login, register

ACCESS = "accessToken"
REFRESH = "refreshToken"
CSRF = "csrfToken"


class BrokenStore(MemorySessionStore):
    def put(self, user_id, session_id, created_at):
        raise StoreFailure("database down")


def _cookie(client, name):
    cookie = client.get_cookie(name)
    return cookie.value if cookie else None


def _set_cookies(resp):
    return {header.split("=", 1)[0]: header for header in resp.headers.getlist("Set-Cookie")}


@pytest.fixture
def logged_in(client):
    assert register(client).status_code == 201
    resp = login(client)
    assert resp.status_code == 200
    return client


def test_auth_routes_live_under_auth_prefix(app):
    rules = {rule.rule for rule in app.url_map.iter_rules()}

    for path in ("register", "login", "tokens", "logout", "me"):
        assert f"/api/v1/auth/{path}" in rules
    assert "/api/v1/login" not in rules


def test_health(client):
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "ok"


def test_register_validates_and_rejects_duplicates(client):
    assert register(client, password="short").status_code == 422
    assert register(client).status_code == 201
    resp = register(client, user_name="alice2")
    assert resp.status_code == 409


def test_login_sets_http_only_cookies(client):
    register(client)

    resp = login(client)

    assert resp.status_code == 200
    cookies = _set_cookies(resp)
    assert set(cookies) == {ACCESS, REFRESH, CSRF}
    assert "HttpOnly" in cookies[REFRESH]
    assert "SameSite=Lax" in cookies[REFRESH]
    assert "Max-Age=604800" in cookies[REFRESH]
    assert "Max-Age=900" in cookies[ACCESS]


def test_production_cookie_attributes(app, client):
    app.config["COOKIE_SECURE"] = ProductionConfig.COOKIE_SECURE
    app.config["COOKIE_SAMESITE"] = ProductionConfig.COOKIE_SAMESITE
    register(client)

    resp = login(client)

    assert resp.status_code == 200
    cookies = _set_cookies(resp)
    for header in cookies.values():
        assert "Secure" in header
        assert "SameSite=Strict" in header
    assert "HttpOnly" in cookies[ACCESS]
    assert "HttpOnly" in cookies[REFRESH]


def test_responses_are_never_cached(client):
    register(client)

    for resp in (login(client), client.post("/api/v1/auth/tokens"), client.get("/api/v1/health")):
        assert resp.headers["Cache-Control"] == "no-store, no-cache, must-revalidate, proxy-revalidate, max-age=0"
        assert resp.headers["Pragma"] == "no-cache"
        assert resp.headers["Expires"] == "0"


@pytest.mark.parametrize("email,password", [("alice@example.com", "wrong-password"), ("nobody@example.com", PASSWORD)])
def test_login_with_bad_credentials(client, email, password):
    register(client)

    resp = login(client, email=email, password=password)

    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid credential"
    assert "Set-Cookie" not in resp.headers


def test_login_store_failure_returns_500_without_cookies(app, client):
    register(client)
    app.extensions["session_manager"].store = BrokenStore()

    resp = login(client)

    assert resp.status_code == 500
    assert "Set-Cookie" not in resp.headers


def test_me_requires_session(app, logged_in):
    resp = logged_in.get("/api/v1/auth/me")
    assert resp.status_code == 200
    assert resp.get_json()["data"]["user_name"] == "alice"

    anonymous = app.test_client()
    resp = anonymous.get("/api/v1/auth/me")
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "UNAUTHORIZED", "message": "Unauthorized", "status": 401}


def test_rotation_replaces_cookies(logged_in):
    old_refresh = _cookie(logged_in, REFRESH)
    old_csrf = _cookie(logged_in, CSRF)

    resp = logged_in.post("/api/v1/auth/tokens")

    assert resp.status_code == 200
    assert _cookie(logged_in, REFRESH) != old_refresh
    assert _cookie(logged_in, CSRF) != old_csrf


def test_rotation_without_refresh_cookie_is_unauthorized(client):
    resp = client.post("/api/v1/auth/tokens")
    assert resp.status_code == 401


def test_replayed_refresh_token_invalidates_session(logged_in):
    first_refresh = _cookie(logged_in, REFRESH)
    assert logged_in.post("/api/v1/auth/tokens").status_code == 200
    second_refresh = _cookie(logged_in, REFRESH)

    logged_in.set_cookie(REFRESH, first_refresh)
    resp = logged_in.post("/api/v1/auth/tokens")

    assert resp.status_code == 403
    assert resp.get_json()["error"] == "SESSION_INVALIDATED"
    assert _cookie(logged_in, REFRESH) is None
    assert _cookie(logged_in, ACCESS) is None

    logged_in.set_cookie(REFRESH, second_refresh)
    resp = logged_in.post("/api/v1/auth/tokens")
    assert resp.status_code == 401


def test_second_login_ends_first_device(app, logged_in):
    device_1_refresh = _cookie(logged_in, REFRESH)
    device_2 = app.test_client()
    assert login(device_2).status_code == 200

    logged_in.set_cookie(REFRESH, device_1_refresh)
    resp = logged_in.post("/api/v1/auth/tokens")

    assert resp.status_code == 403


def test_logout_clears_cookies_and_is_idempotent(app, logged_in):
    resp = logged_in.post("/api/v1/auth/logout")

    assert resp.status_code == 200
    assert _cookie(logged_in, REFRESH) is None
    assert _cookie(logged_in, CSRF) is None

    resp = logged_in.post("/api/v1/auth/logout")
    assert resp.status_code == 200


def test_rotation_after_logout_fails(logged_in):
    refresh = _cookie(logged_in, REFRESH)
    logged_in.post("/api/v1/auth/logout")

    logged_in.set_cookie(REFRESH, refresh)
    resp = logged_in.post("/api/v1/auth/tokens")

    assert resp.status_code == 401


def test_mutation_requires_csrf_header(logged_in):
    resp = logged_in.patch("/api/v1/users/me", json={"user_name": "alicia"})
    assert resp.status_code == 401

    resp = logged_in.patch("/api/v1/users/me", json={"user_name": "alicia"}, headers={"X-CSRF-Token": "0" * 64})
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Unauthorized"

    csrf = _cookie(logged_in, CSRF)
    resp = logged_in.patch("/api/v1/users/me", json={"user_name": "alicia"}, headers={"X-CSRF-Token": csrf})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["user_name"] == "alicia"


def test_csrf_token_follows_rotation(logged_in):
    old_csrf = _cookie(logged_in, CSRF)
    logged_in.post("/api/v1/auth/tokens")

    resp = logged_in.patch("/api/v1/users/me", json={"user_name": "alicia"}, headers={"X-CSRF-Token": old_csrf})
    assert resp.status_code == 401

    new_csrf = _cookie(logged_in, CSRF)
    resp = logged_in.patch("/api/v1/users/me", json={"user_name": "alicia"}, headers={"X-CSRF-Token": new_csrf})
    assert resp.status_code == 200


def test_validate_config_rejects_missing_or_shared_secrets():
    with pytest.raises(RuntimeError, match="REFRESH_TOKEN_SECRET"):
        validate_config({"ACCESS_TOKEN_SECRET": "a", "CSRF_TOKEN_SECRET": "c", "DATABASE_URL": "sqlite://"})
    with pytest.raises(RuntimeError, match="must differ"):
        validate_config({
            "ACCESS_TOKEN_SECRET": "same",
            "REFRESH_TOKEN_SECRET": "same",
            "CSRF_TOKEN_SECRET": "c",
            "DATABASE_URL": "sqlite://",
        })
