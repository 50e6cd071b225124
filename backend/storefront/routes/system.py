# backend/storefront/routes/system.py
"""
System health endpoint.

Checks the database and reports which required settings are missing, so a
deployment with no gateway keys shows up as degraded rather than failing
at the first checkout.
"""

import time
from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from ..config import REQUIRED_SETTINGS
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


def check_configuration() -> dict:
    # DATABASE_URL always resolves to something; only the secrets can be blank
    missing = [key for key in REQUIRED_SETTINGS[1:] if not current_app.config.get(key)]
    if missing:
        return {"status": "degraded", "missing": missing}
    return {"status": "healthy"}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded (missing settings)
    - 503: database unreachable
    """
    database_health = check_database_health()
    config_health = check_configuration()

    if database_health["status"] == "unhealthy":
        overall_status, http_status = "unhealthy", 503
    elif config_health["status"] == "degraded":
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {
            "database": database_health,
            "configuration": config_health,
        },
    }, http_status
