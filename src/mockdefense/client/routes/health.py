"""Health check route."""

from flask import Blueprint, jsonify

from mockdefense.client.routes.config import get_config
from mockdefense.service.database.config import get_storage_backend

health_bp = Blueprint("health", __name__)


@health_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint.

    Returns:
        JSON with service status
    """
    services = get_config().services
    return jsonify(
        {
            "status": "healthy",
            "services": "initialized" if services else "not initialized",
            "storage_backend": get_storage_backend(),
        }
    )
