# backend/giftcards/routes/system.py
"""
System health and version endpoints.
"""

import sys
import time
from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from ..models import GiftCard
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and that the gift card table is readable.
    """
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        card_count = db.session.query(GiftCard).count()
        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "gift_cards": card_count,
            }
        }
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_payment_config() -> dict:
    """Payment verification cannot work without the key secret."""
    if current_app.config.get("RAZORPAY_KEY_SECRET"):
        return {"status": "healthy"}
    return {"status": "degraded", "warning": "RAZORPAY_KEY_SECRET is not configured"}


@system_bp.get("/")
def index():
    return "LIKE gift card backend running"


@system_bp.get("/api/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded (still operational)
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    payment_health = check_payment_config()

    all_checks = [database_health, payment_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status = "unhealthy"
        http_status = 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status = "degraded"
        http_status = 200  # Degraded is still operational
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "payments": payment_health,
        }
    }

    return response, http_status


@system_bp.get("/api/version")
def version():
    """
    Version endpoint for deployment debugging. Exposes no secrets.
    """
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }
