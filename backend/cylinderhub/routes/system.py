# Overview: System health and version endpoints.

"""
System health and version endpoints.

Health checks the database, the session table, the static role mapping and
the notification hub. Returns 503 when any check is unhealthy.
"""

import sys
import time

from flask import Blueprint, current_app

from ..extensions import db
from ..models import Cylinder, SessionToken, User
from ..permissions import validate_role_mapping
from ..services import notification_service
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api/system")


def _elapsed(start_time: float) -> float:
    return round((time.time() - start_time) * 1000, 2)


def check_database_health() -> dict:
    """Check database connectivity with a couple of cheap counts."""
    start_time = time.time()
    try:
        cylinder_count = db.session.query(Cylinder).count()
        user_count = db.session.query(User).count()
        return {
            "status": "healthy",
            "latency_ms": _elapsed(start_time),
            "details": {
                "cylinders": cylinder_count,
                "users": user_count,
            }
        }
    except Exception:
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": _elapsed(start_time),
            "error": "Database error"
        }


def check_session_service_health() -> dict:
    start_time = time.time()
    try:
        active_sessions = db.session.query(SessionToken).filter_by(is_revoked=False).count()
        expired_sessions = db.session.query(SessionToken).filter(
            SessionToken.expires_at < utcnow(),
            SessionToken.is_revoked.is_(False)
        ).count()
        return {
            "status": "healthy",
            "latency_ms": _elapsed(start_time),
            "details": {
                "active_sessions": active_sessions,
                "expired_pending_cleanup": expired_sessions,
            }
        }
    except Exception:
        current_app.logger.exception("Session service health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": _elapsed(start_time),
            "error": "Session service error"
        }


def check_auth_service_health() -> dict:
    """Role mapping must still validate; at least one active admin should exist."""
    start_time = time.time()
    try:
        validate_role_mapping()
    except ValueError as e:
        return {
            "status": "unhealthy",
            "latency_ms": _elapsed(start_time),
            "error": str(e),
        }

    admin_count = db.session.query(User).filter_by(role="ADMIN", is_active=True).count()
    if admin_count == 0:
        return {
            "status": "degraded",
            "latency_ms": _elapsed(start_time),
            "warning": "No active ADMIN user",
        }
    return {
        "status": "healthy",
        "latency_ms": _elapsed(start_time),
        "details": {"active_admins": admin_count},
    }


def check_notification_health() -> dict:
    hub = notification_service.get_hub()
    if hub is None:
        return {"status": "degraded", "warning": "Notification hub not initialised"}
    return {"status": "healthy", "details": {"subscribers": len(hub.subscribers)}}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    checks = {
        "database": check_database_health(),
        "session_service": check_session_service_health(),
        "auth_service": check_auth_service_health(),
        "notifications": check_notification_health(),
    }

    statuses = [c["status"] for c in checks.values()]
    if "unhealthy" in statuses:
        overall_status, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": _elapsed(start_time),
        "checks": checks,
    }, http_status


@system_bp.get("/version")
def version():
    env = "production" if not current_app.debug else "development"
    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }
