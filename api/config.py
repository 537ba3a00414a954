"""
Environment-aware configuration.
Secrets, token lifetimes, cookie attributes and the database URL all come
from the environment (.env is read if present).
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present

REQUIRED_SECRETS = ("ACCESS_TOKEN_SECRET", "REFRESH_TOKEN_SECRET", "CSRF_TOKEN_SECRET")


def _env_bool(name, default):
    return os.getenv(name, str(default)).lower() in ("1", "true", "yes")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///session-api.db")

    # one secret per token kind; a leaked access secret cannot forge refresh tokens
    ACCESS_TOKEN_SECRET = os.getenv("ACCESS_TOKEN_SECRET", "dev-access-secret-change-me")
    REFRESH_TOKEN_SECRET = os.getenv("REFRESH_TOKEN_SECRET", "dev-refresh-secret-change-me")
    CSRF_TOKEN_SECRET = os.getenv("CSRF_TOKEN_SECRET", "dev-csrf-secret-change-me")
    JWT_ALGORITHM = "HS512"
    ACCESS_TOKEN_TTL = timedelta(seconds=int(os.getenv("ACCESS_TOKEN_TTL_SECONDS", "900")))
    REFRESH_TOKEN_TTL = timedelta(seconds=int(os.getenv("REFRESH_TOKEN_TTL_SECONDS", "604800")))

    ACCESS_COOKIE_NAME = os.getenv("ACCESS_COOKIE_NAME", "accessToken")
    REFRESH_COOKIE_NAME = os.getenv("REFRESH_COOKIE_NAME", "refreshToken")
    CSRF_COOKIE_NAME = os.getenv("CSRF_COOKIE_NAME", "csrfToken")
    CSRF_HEADER_NAME = os.getenv("CSRF_HEADER_NAME", "X-CSRF-Token")
    # SSR front-ends read the csrf cookie server side, so it stays HttpOnly by default
    CSRF_COOKIE_HTTPONLY = _env_bool("CSRF_COOKIE_HTTPONLY", True)
    COOKIE_SECURE = True
    COOKIE_SAMESITE = "Strict"


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    # In dev, propagate exceptions so our error handler has full context
    PROPAGATE_EXCEPTIONS = True
    COOKIE_SECURE = False
    COOKIE_SAMESITE = "Lax"


class TestingConfig(BaseConfig):
    TESTING = True
    DATABASE_URL = "sqlite://"
    ACCESS_TOKEN_SECRET = "test-access-secret-" + "a" * 64
    REFRESH_TOKEN_SECRET = "test-refresh-secret-" + "r" * 64
    CSRF_TOKEN_SECRET = "test-csrf-secret-" + "c" * 64
    COOKIE_SECURE = False
    COOKIE_SAMESITE = "Lax"


class ProductionConfig(BaseConfig):
    DEBUG = False
    DATABASE_URL = os.getenv("DATABASE_URL")
    ACCESS_TOKEN_SECRET = os.getenv("ACCESS_TOKEN_SECRET")
    REFRESH_TOKEN_SECRET = os.getenv("REFRESH_TOKEN_SECRET")
    CSRF_TOKEN_SECRET = os.getenv("CSRF_TOKEN_SECRET")


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    if name:
        name = name.lower()
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig


def validate_config(config) -> None:
    """
    Fail fast when token secrets are missing or shared between token kinds.
    `config` is any mapping (Flask's app.config).
    """
    missing = [key for key in REQUIRED_SECRETS if not config.get(key)]
    if not config.get("DATABASE_URL"):
        missing.append("DATABASE_URL")
    if missing:
        raise RuntimeError("missing required secrets: " + ", ".join(missing))
    secrets = [config[key] for key in REQUIRED_SECRETS]
    if len(set(secrets)) != len(secrets):
        raise RuntimeError("ACCESS_TOKEN_SECRET, REFRESH_TOKEN_SECRET and CSRF_TOKEN_SECRET must differ")
