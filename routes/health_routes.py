# routes/health_routes.py

from datetime import datetime, timezone
from flask import Blueprint, current_app, jsonify

health_bp = Blueprint("health", __name__)


@health_bp.route("/health", methods=["GET"])
def health():
    return jsonify({
        "status": "healthy",
        "service": current_app.config.get("MINIDRIVE_SERVICE_NAME", "MiniDrive"),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }), 200
