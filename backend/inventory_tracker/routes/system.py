# backend/inventory_tracker/routes/system.py
"""
System health endpoint.

Each probe runs a cheap query against one table group so a broken database
can be told apart from a broken app. Any failing probe turns the response
into a 503.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Item, NotificationMessage, SessionToken, User
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def _probe_inventory() -> dict:
    return {
        "items": db.session.query(Item).count(),
        "users": db.session.query(User).count(),
    }


def _probe_sessions() -> dict:
    live = db.session.query(SessionToken).filter(SessionToken.is_revoked.is_(False))
    return {
        "active_sessions": live.count(),
        "expired_pending_cleanup": live.filter(SessionToken.expires_at < utcnow()).count(),
    }


def _probe_outbox() -> dict:
    return {"queued_messages": db.session.query(NotificationMessage).count()}


PROBES = (
    ("database", _probe_inventory),
    ("session_service", _probe_sessions),
    ("notifications", _probe_outbox),
)


def run_probe(name: str, probe) -> dict:
    started = time.perf_counter()
    try:
        result = {"status": "healthy", "details": probe()}
    except Exception:
        current_app.logger.exception("Health probe %s failed", name)
        db.session.rollback()
        result = {"status": "unhealthy", "error": f"{name} error"}
    result["latency_ms"] = round((time.perf_counter() - started) * 1000, 2)
    return result


@system_bp.get("/health")
def health():
    """200 when every probe passes, 503 otherwise."""
    started = time.perf_counter()
    checks = {name: run_probe(name, probe) for name, probe in PROBES}
    healthy = all(check["status"] == "healthy" for check in checks.values())

    return {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.perf_counter() - started) * 1000, 2),
        "checks": checks,
    }, (200 if healthy else 503)
