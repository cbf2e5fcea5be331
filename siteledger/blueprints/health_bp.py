"""
Health check blueprint.

Endpoints:
    GET /api/v1/health        — simple 200 for load balancers
    GET /api/v1/health/live   — database round-trip
"""

import logging
import time

from flask import Blueprint, jsonify

from siteledger.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


@health_bp.route("", methods=["GET"])
def health():
    return jsonify({"status": "ok", "app": "SiteLedger"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Liveness check with database status."""
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
        checks = {"database": {"status": "ok", "latency_ms": round(db_ms, 1)}}
        overall = True
    except Exception as exc:
        checks = {"database": {"status": "error", "detail": str(exc)}}
        overall = False
        logger.error("Health check — database failed: %s", exc)

    status = "healthy" if overall else "degraded"
    return jsonify({"status": status, "checks": checks}), 200 if overall else 503
