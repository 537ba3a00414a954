from datetime import datetime
from typing import Callable

from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config, validate_config
from .errors import register_error_handlers
from models import storage  # DBStorage singleton (scoped_session)
from models.session_store import SQLSessionStore
from services.credentials import CredentialIssuer, utc_now
from services.sessions import SessionManager
from utils.csrf import CSRFBinder
from utils.tokens import TokenCodec

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0.0",
    "info": {
        "title": "Session Auth API",
        "version": "1.0.0",
        "description": "Cookie-based sessions: login, refresh rotation with reuse detection, CSRF binding.",
    },
    "basePath": "/",
    "schemes": ["http"],
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def build_session_manager(config, store, clock: Callable[[], datetime] = utc_now) -> SessionManager:
    """Wire codecs, csrf binder and issuer from config; secrets are passed explicitly."""
    access_codec = TokenCodec(config["ACCESS_TOKEN_SECRET"], config["JWT_ALGORITHM"])
    refresh_codec = TokenCodec(config["REFRESH_TOKEN_SECRET"], config["JWT_ALGORITHM"])
    csrf_binder = CSRFBinder(config["CSRF_TOKEN_SECRET"])
    issuer = CredentialIssuer(
        access_codec,
        refresh_codec,
        csrf_binder,
        access_ttl=config["ACCESS_TOKEN_TTL"],
        refresh_ttl=config["REFRESH_TOKEN_TTL"],
        clock=clock,
    )
    return SessionManager(
        store,
        issuer,
        access_codec,
        refresh_codec,
        csrf_binder,
        refresh_ttl=config["REFRESH_TOKEN_TTL"],
        clock=clock,
    )


def create_app(config_name: str | None = None, clock: Callable[[], datetime] = utc_now) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    `clock` is the time source for token issuance (tests pass a controllable one).
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    validate_config(app.config)

    # credentials travel in cookies, so CORS must allow them and the csrf header
    CORS(
        app,
        resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
        allow_headers=["Content-Type", app.config["CSRF_HEADER_NAME"]],
    )

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    storage.reload(app.config["DATABASE_URL"])
    app.extensions["session_manager"] = build_session_manager(app.config, SQLSessionStore(storage), clock)

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(users_bp, url_prefix="/api/v1")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        storage.close()

    # responses may carry Set-Cookie with credentials; never let a cache keep them
    @app.after_request
    def no_cache(response):
        response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, proxy-revalidate, max-age=0"
        response.headers["Pragma"] = "no-cache"
        response.headers["Expires"] = "0"
        return response

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Session Auth API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app
