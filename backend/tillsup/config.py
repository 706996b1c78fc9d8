# backend/tillsup/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/tillsup.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///tillsup.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Authorization must fail fast with a typed error instead of stalling.
    # Budgets are in milliseconds and cover identity resolution and
    # ownership repair respectively.
    AUTHZ_TIMEOUT_MS = int(os.environ.get("TILLSUP_AUTHZ_TIMEOUT_MS", "300"))
    OWNERSHIP_REPAIR_TIMEOUT_MS = int(os.environ.get("TILLSUP_REPAIR_TIMEOUT_MS", "500"))

    SESSION_ABSOLUTE_TIMEOUT_HOURS = int(os.environ.get("TILLSUP_SESSION_HOURS", "24"))
    SESSION_IDLE_TIMEOUT_MINUTES = int(os.environ.get("TILLSUP_SESSION_IDLE_MINUTES", "120"))

    LOG_LEVEL = os.environ.get("TILLSUP_LOG_LEVEL", "INFO")

    # bcrypt cost factor; tests lower it for speed
    BCRYPT_ROUNDS = int(os.environ.get("TILLSUP_BCRYPT_ROUNDS", "12"))
