# routes/__init__.py
from .health_routes import health_bp
from .auth_routes import auth_bp
from .file_routes import file_bp
from .folder_routes import folder_bp
from .quota_routes import quota_bp
from .audit_routes import audit_bp
from .share_routes import share_bp
from .gateway_routes import gateway_bp

SERVICE_BLUEPRINTS = {
    "identity": (auth_bp, "/api/auth"),
    "files": (file_bp, "/api/files"),
    "folders": (folder_bp, "/api/folders"),
    "quota": (quota_bp, "/api/quota"),
    "audit": (audit_bp, "/api/audit"),
    "sharing": (share_bp, "/api/shares"),
}


def register_blueprints(app, services):
    app.register_blueprint(health_bp)
    for name in services:
        if name == "gateway":
            app.register_blueprint(gateway_bp)
            continue
        blueprint, url_prefix = SERVICE_BLUEPRINTS[name]
        app.register_blueprint(blueprint, url_prefix=url_prefix)
