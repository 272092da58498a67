"""Health check routes for monitoring application status."""
import logging
import time
from datetime import datetime, timezone
from flask import Blueprint, jsonify, current_app

from type_definitions.api_types import HealthCheckResponse
from utils.config import APP_VERSION

logger = logging.getLogger("GagStock.Health")

health_bp = Blueprint('health', __name__)


@health_bp.route("/health", methods=["GET"])
def health_check():
    """Health check endpoint for monitoring application status."""
    try:
        logger.debug("Health check endpoint called")

        tracker = getattr(current_app, 'stock_tracker', None)
        if tracker is None:
            logger.error("Health check failed: Stock tracker not initialized")
            return jsonify({"status": "unhealthy", "error": "Stock tracker not initialized"}), 500

        started_at = getattr(current_app, 'started_at', time.time())
        status = HealthCheckResponse(
            status="healthy",
            version=APP_VERSION,
            timestamp=datetime.now(timezone.utc).isoformat(),
            uptime_seconds=round(time.time() - started_at, 1),
            active_sessions=len(tracker.sessions),
            bot_online=tracker.online,
        )
        return jsonify(status), 200
    except Exception as e:
        logger.error(f"Health check failed: {e}", exc_info=True)
        return jsonify({"status": "unhealthy", "error": str(e)}), 500
