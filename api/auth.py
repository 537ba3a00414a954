"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login   -> sets accessToken / refreshToken / csrfToken cookies
- POST /auth/tokens  -> refresh rotation (refresh cookie only)
- POST /auth/logout  -> always 200, clears cookies
- GET  /auth/me

The implementation:
- Uses argon2 for password hashing (via utils.security)
- Issues short-lived access tokens and long-lived refresh tokens (JWTs signed with HS512)
- Keeps one session record per user so a replayed refresh token revokes the session
- Binds CSRF tokens to the refresh session id (utils.csrf)
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, abort, current_app

from models import storage
from models.user import User
from models.schemas.user import UserCreateSchema, UserOutSchema, UserLoginSchema
from services.identity import verify_credentials
from utils.cookies import send_tokens, clear_tokens
from utils.decorators import get_session_manager, read_token_cookies, session_required
from utils.security import hash_password

bp = Blueprint("auth", __name__)

user_create_schema = UserCreateSchema()
user_out_schema = UserOutSchema()
user_login_schema = UserLoginSchema()


@bp.post("/register")
def register():
    """
    Register a new user.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            user_name: { type: string }
            email: { type: string }
            password: { type: string }
    responses:
      201:
        description: Created
      409:
        description: User already exists
      422:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    data = user_create_schema.load(payload)

    session = storage.get_session()
    exists = session.query(User).filter(
        (User.email == data["email"]) | (User.user_name == data["user_name"])
    ).first()
    if exists:
        abort(409, description="User already exists")

    user = User(
        user_name=data["user_name"],
        email=data["email"],
        password_hash=hash_password(data["password"]),
    )
    storage.new(user)
    storage.save()

    return jsonify({"data": user_out_schema.dump(user)}), 201


@bp.post("/login")
def login():
    """
    Login: verify credentials and start a session (cookies)
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (sets accessToken, refreshToken, csrfToken cookies)
      401:
        description: Invalid credential
      500:
        description: Session could not be persisted
    """
    payload = request.get_json(silent=True) or {}
    data = user_login_schema.load(payload)

    identity = verify_credentials(storage.get_session(), data["email"], data["password"])
    issued = get_session_manager().login(identity.user_id, identity.user_name)

    response = jsonify(
        {
            "message": "Successful authentication",
            "expires_in": int(current_app.config["ACCESS_TOKEN_TTL"].total_seconds()),
        }
    )
    send_tokens(response, issued)
    return response, 200


@bp.post("/tokens")
def rotate_tokens():
    """
    Exchange the refresh cookie for a fresh token triple (rotation).
    The access token is not checked; it is expected to be expired.
    ---
    tags:
      - Auth
    responses:
      200:
        description: OK (fresh cookies)
      401:
        description: Invalid refresh token or no active session
      403:
        description: Refresh token reuse detected, session invalidated
    """
    _, refresh_token = read_token_cookies()
    issued = get_session_manager().rotate(refresh_token)

    response = jsonify(
        {
            "message": "Tokens rotated",
            "expires_in": int(current_app.config["ACCESS_TOKEN_TTL"].total_seconds()),
        }
    )
    send_tokens(response, issued)
    return response, 200


@bp.post("/logout")
def logout():
    """
    Logout: revokes the session if it is still current; always clears cookies
    ---
    tags:
      - Auth
    responses:
      200:
        description: Logged out
    """
    access_token, refresh_token = read_token_cookies()
    get_session_manager().logout(access_token, refresh_token)

    response = jsonify({"message": "Logged out"})
    clear_tokens(response)
    return response, 200


@bp.get("/me")
@session_required()
def me():
    """
    Current user of the session
    ---
    tags:
      - Auth
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    user = storage.get(User, g.session_claims.user_id)
    if user is None:
        abort(401, description="Unauthorized")
    return jsonify({"data": user_out_schema.dump(user)}), 200
