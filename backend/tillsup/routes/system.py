# backend/tillsup/routes/system.py
"""
System health endpoint.

Reports database reachability and ownership linkage across tenants so a
broken business shows up before its users hit OWNERSHIP_UNREPAIRABLE.
"""

import time

from flask import Blueprint, current_app, jsonify

from ..extensions import db
from ..models import Business, SessionToken
from ..services.ownership_service import OwnershipState, scan_ownership
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.
    """
    start_time = time.time()
    try:
        business_count = db.session.query(Business).count()
        active_sessions = db.session.query(SessionToken).filter(
            SessionToken.is_revoked.is_(False),
            SessionToken.expires_at >= utcnow(),
        ).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "businesses": business_count,
                "active_sessions": active_sessions,
            },
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


def check_ownership_health() -> dict:
    try:
        broken = [
            {"business_id": business.id, "state": state.value}
            for business, state in scan_ownership()
            if state is not OwnershipState.VALID
        ]
    except Exception:
        current_app.logger.exception("Ownership health check failed")
        db.session.rollback()
        return {"status": "unhealthy", "error": "Ownership scan failed"}

    if broken:
        return {"status": "degraded", "broken": broken}
    return {"status": "healthy"}


@system_bp.get("/health")
def health():
    checks = {
        "database": check_database_health(),
        "ownership": check_ownership_health(),
    }
    statuses = {check["status"] for check in checks.values()}
    if "unhealthy" in statuses:
        overall = "unhealthy"
    elif "degraded" in statuses:
        overall = "degraded"
    else:
        overall = "healthy"

    return jsonify({"status": overall, "checks": checks}), 200 if overall != "unhealthy" else 503
