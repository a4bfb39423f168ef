# backend/reuse_store/config.py
from __future__ import annotations
import os


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/reuse_store.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///reuse_store.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Verification queue: rolling "recently approved" window and page sizes
    APPROVED_WINDOW_DAYS = _int_env("APPROVED_WINDOW_DAYS", 30)
    VERIFICATION_PAGE_SIZE = _int_env("VERIFICATION_PAGE_SIZE", 50)
    ITEM_PAGE_SIZE = _int_env("ITEM_PAGE_SIZE", 100)

    # Academic years roll over in August in this zone
    ACADEMIC_TIMEZONE = os.environ.get("ACADEMIC_TIMEZONE", "America/New_York")

    # Dev frontend origins allowed by the CORS hook
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if origin.strip()
    ]

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
