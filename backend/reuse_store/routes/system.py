# backend/reuse_store/routes/system.py
"""
System health endpoint.

Reports database reachability plus the size of the verification queue so a
deploy can be checked without opening the review screens.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Checkout, Item
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        checkout_count = db.session.query(Checkout).count()
        item_count = db.session.query(Item).count()
        awaiting_review = (
            db.session.query(Checkout)
            .filter(Checkout.needs_approval.is_(True))
            .count()
        )

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "checkouts": checkout_count,
                "items": item_count,
                "checkouts_needing_approval": awaiting_review,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: Database reachable
    - 503: Database unreachable
    """
    database_health = check_database_health()
    healthy = database_health["status"] == "healthy"

    response = {
        "status": "ok" if healthy else "unhealthy",
        "message": "ReUSE Store API is running" if healthy else "Database unavailable",
        "timestamp": to_utc_z(utcnow()),
        "checks": {
            "database": database_health,
        }
    }

    return response, 200 if healthy else 503
