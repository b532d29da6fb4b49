from flask import Flask, jsonify
from flask_cors import CORS
from extensions import db, migrate, jwt
from config import Config
from clients import init_clients
from routes import register_blueprints
from services.auth_service import validate_jwt_config
from utils.errors import DriveError
from utils.performance_logger import configure_logging
import logging

logger = logging.getLogger(__name__)

BACKEND_SERVICES = ["identity", "files", "folders", "quota", "audit", "sharing"]
VALID_SERVICES = set(BACKEND_SERVICES) | {"gateway"}

DISPLAY_NAMES = {
    "identity": "Identity",
    "files": "Files",
    "folders": "Folders",
    "quota": "Quota",
    "audit": "Audit",
    "sharing": "Sharing",
    "gateway": "Gateway",
}


def resolve_services(services):
    """Normalize a service selection; "all" means every backend service."""
    if isinstance(services, str):
        services = services.split(",")
    names = [name.strip().lower() for name in (services or []) if name and name.strip()]
    if not names or "all" in names:
        return list(BACKEND_SERVICES)

    unknown = [name for name in names if name not in VALID_SERVICES]
    if unknown:
        raise ValueError(f"Unknown service(s): {', '.join(unknown)}")
    if "gateway" in names and len(names) > 1:
        raise ValueError("The gateway must run in its own process.")
    return [name for name in BACKEND_SERVICES + ["gateway"] if name in names]


def create_app(services=None, config_overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    hosted = resolve_services(services if services is not None else app.config["MINIDRIVE_SERVICES"])
    app.config["MINIDRIVE_HOSTED_SERVICES"] = hosted
    app.config["MINIDRIVE_SERVICE_NAME"] = DISPLAY_NAMES[hosted[0]] if len(hosted) == 1 else "MiniDrive"

    if "identity" in hosted:
        validate_jwt_config(app.config)

    CORS(app,
         origins=app.config.get("CORS_ORIGINS") or [],
         allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
         methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
         supports_credentials=True)

    # Init extensions
    if hosted != ["gateway"]:
        db.init_app(app)
        migrate.init_app(app, db)
        jwt.init_app(app)
        init_clients(app, hosted)

    @app.errorhandler(DriveError)
    def handle_drive_error(error):
        if error.status_code >= 500:
            logger.error(f"{error.code}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(413)
    def handle_too_large(error):
        return jsonify({"error": "Request payload too large.", "code": "PAYLOAD_TOO_LARGE"}), 413

    register_blueprints(app, hosted)

    logger.info(f"MiniDrive app ready, hosting: {', '.join(hosted)}")
    return app


if __name__ == "__main__":
    app = create_app()
    app.run(debug=True, port=5000)
