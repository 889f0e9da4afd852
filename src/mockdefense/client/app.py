"""Flask web application for the mock thesis defense.

This module exposes the defense API: uploading a document to prepare a
session, then a strict-examiner conversation grounded on that document.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from mockdefense.client.routes import defense_bp, health_bp, init_config
from mockdefense.constants import MAX_UPLOAD_SIZE_BYTES
from mockdefense.service.wiring import DefenseServices, build_services

# Configure logging
log_level = os.getenv("LOG_LEVEL", "INFO")
logging.basicConfig(
    level=getattr(logging, log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()
logger.debug("Environment variables loaded")

# Create Flask app
app = Flask(__name__)
logger.debug("Flask app created")

# Configure upload settings
UPLOAD_FOLDER = Path(os.getenv("UPLOAD_FOLDER", "/tmp/mockdefense_uploads"))
app.config["MAX_CONTENT_LENGTH"] = MAX_UPLOAD_SIZE_BYTES

# Register blueprints
app.register_blueprint(defense_bp)
app.register_blueprint(health_bp)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


def initialize_services(services: DefenseServices | None = None) -> DefenseServices:
    """Build the defense pipeline once and hand it to the routes.

    Args:
        services: Pre-built services (tests); built from the environment when None

    Returns:
        DefenseServices: The services the routes will use
    """
    logger.info("🔧 Initializing services...")

    if services is None:
        services = build_services()

    UPLOAD_FOLDER.mkdir(parents=True, exist_ok=True)
    init_config(
        services=services,
        upload_folder=UPLOAD_FOLDER,
        debug_context=_env_flag("DEFENSE_DEBUG_CONTEXT"),
    )
    logger.info("✅ Services initialized")
    return services


def create_app(services: DefenseServices | None = None) -> Flask:
    """Factory function for creating the Flask application.

    This function is used by WSGI servers like gunicorn to create the app.
    It initializes services before returning the app instance.

    Returns:
        Flask: The configured Flask application instance
    """
    initialize_services(services)
    return app


def main() -> None:
    """Entry point for the Flask application command-line interface."""
    print("🚀 Starting mockdefense Flask application...")

    print("📦 Initializing services...")
    initialize_services()
    print("✅ Services initialized successfully")

    host = os.getenv("FLASK_HOST", "0.0.0.0")
    port = int(os.getenv("FLASK_PORT", "5000"))
    debug = os.getenv("FLASK_ENV", "development") == "development"

    print(f"🌐 Starting Flask server on http://{host}:{port}")
    print(f"🔧 Debug mode: {debug}")
    print("📝 Press CTRL+C to quit")

    # The reloader would start a second process with its own in-memory state
    app.run(host=host, port=port, debug=debug, use_reloader=False)


if __name__ == "__main__":
    main()
