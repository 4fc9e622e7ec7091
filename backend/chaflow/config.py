# backend/chaflow/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    APP_ENV = os.environ.get("APP_ENV", "development")

    # SQLite DB stored in backend/instance/chaflow.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///chaflow.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session cookie carrying the bearer token
    SESSION_COOKIE_NAME = os.environ.get("SESSION_COOKIE_NAME", "CHAFLOW_SESSION")
    SESSION_DURATION_DAYS = int(os.environ.get("SESSION_DURATION_DAYS", "14"))
    SESSION_COOKIE_SECURE = _env_bool("SESSION_COOKIE_SECURE", APP_ENV == "production")

    # bcrypt_pbkdf work factor; tests drop this to keep hashing fast
    PASSWORD_HASH_ROUNDS = int(os.environ.get("PASSWORD_HASH_ROUNDS", "64"))

    # Bootstrap admin account (created when no ADMIN exists)
    ADMIN_EMAIL = os.environ.get("ADMIN_EMAIL", "admin@gc.vn")
    ADMIN_NAME = os.environ.get("ADMIN_NAME", "GC Admin")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "Admin@123")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
