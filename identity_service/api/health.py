"""Health check endpoints (no authentication)."""
from datetime import datetime, timezone

from flask import Blueprint, jsonify

bp = Blueprint("health", __name__)

SERVICE_NAME = "identity-service"


@bp.route("/health")
def health_check():
    """Basic health check endpoint."""
    return jsonify({
        "success": True,
        "service": SERVICE_NAME,
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }), 200


@bp.route("/ready")
def readiness_check():
    """Readiness check endpoint (can be extended with dependency checks)."""
    return ("ready", 200, {"Content-Type": "text/plain"})
