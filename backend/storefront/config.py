# backend/storefront/config.py
from __future__ import annotations

import os
import re


REQUIRED_SETTINGS = (
    "DATABASE_URL",
    "JWT_SECRET",
    "RAZORPAY_KEY_ID",
    "RAZORPAY_KEY_SECRET",
    "RAZORPAY_WEBHOOK_SECRET",
)

DEFAULT_DATABASE_URI = "sqlite:///storefront.sqlite3"


def _strip_sslmode(url: str) -> str:
    # SSL is driven by PG_SSL; a sslmode in the URL would conflict with connect_args
    cleaned = re.sub(r"([?&])sslmode=\w+&?", r"\1", url)
    return cleaned.rstrip("?&")


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = _strip_sslmode(os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URI))
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Postgres connection pool (ignored for SQLite)
    PG_SSL = os.environ.get("PG_SSL", "false").lower()
    PG_POOL_MAX = int(os.environ.get("PG_POOL_MAX", "10"))
    PG_POOL_TIMEOUT_SECONDS = 5
    PG_POOL_RECYCLE_SECONDS = 30

    JWT_SECRET = os.environ.get("JWT_SECRET", "")
    JWT_ALGORITHM = "HS256"
    JWT_EXPIRES_DAYS = int(os.environ.get("JWT_EXPIRES_DAYS", "7"))
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    RAZORPAY_KEY_ID = os.environ.get("RAZORPAY_KEY_ID", "")
    RAZORPAY_KEY_SECRET = os.environ.get("RAZORPAY_KEY_SECRET", "")
    RAZORPAY_WEBHOOK_SECRET = os.environ.get("RAZORPAY_WEBHOOK_SECRET", "")
    RAZORPAY_API_BASE = os.environ.get("RAZORPAY_API_BASE", "https://api.razorpay.com/v1")
    GATEWAY_TIMEOUT_SECONDS = float(os.environ.get("GATEWAY_TIMEOUT_SECONDS", "15"))
    PAYMENT_CURRENCY = os.environ.get("PAYMENT_CURRENCY", "INR")

    CORS_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    }


def engine_options_for(config) -> dict:
    """
    Build SQLAlchemy engine options from the loaded config.

    SQLite gets the driver defaults (in-memory test databases use a static pool).
    """
    uri = config.get("SQLALCHEMY_DATABASE_URI", "")
    if uri.startswith("sqlite"):
        return {}

    options = {
        "pool_size": config.get("PG_POOL_MAX", 10),
        "max_overflow": 0,
        "pool_timeout": config.get("PG_POOL_TIMEOUT_SECONDS", 5),
        "pool_recycle": config.get("PG_POOL_RECYCLE_SECONDS", 30),
        "pool_pre_ping": True,
    }
    if config.get("PG_SSL") in ("true", "require"):
        options["connect_args"] = {"sslmode": "require"}
    return options


def warn_missing_settings(app) -> list[str]:
    """Log a warning for each missing required setting. Never halts startup."""
    missing = []
    if not os.environ.get("DATABASE_URL") and app.config["SQLALCHEMY_DATABASE_URI"] == DEFAULT_DATABASE_URI:
        missing.append("DATABASE_URL")
    missing.extend(key for key in REQUIRED_SETTINGS[1:] if not app.config.get(key))
    if missing:
        app.logger.warning("Missing environment variables: %s", ", ".join(missing))
    return missing
