# backend/jewelstock/config.py
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

    # SQLite DB stored next to the instance by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///jewelstock.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if origin.strip()
    ]

    # Dashboard alert level (units on hand)
    LOW_STOCK_THRESHOLD = _int_env("LOW_STOCK_THRESHOLD", 2)

    # Rates older than this are flagged as stale on price quotes
    METAL_RATE_MAX_AGE_HOURS = _int_env("METAL_RATE_MAX_AGE_HOURS", 24)

    SESSION_ABSOLUTE_HOURS = _int_env("SESSION_ABSOLUTE_HOURS", 24)
    SESSION_IDLE_HOURS = _int_env("SESSION_IDLE_HOURS", 2)

    # Attempts the HTTP layer makes before answering 409 on a write conflict
    WRITE_RETRY_ATTEMPTS = _int_env("WRITE_RETRY_ATTEMPTS", 3)
