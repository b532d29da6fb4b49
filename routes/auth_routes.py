# routes/auth_routes.py

from flask import Blueprint, request, jsonify, g
from services.auth_service import AuthService
from utils.security import get_request_token, get_client_ip, get_user_agent, require_auth

auth_bp = Blueprint("auth", __name__)
auth_service = AuthService()


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@auth_bp.route("/register", methods=["POST"])
def register():
    data = _json_body()
    result = auth_service.register(
        data.get("email"),
        data.get("password"),
        data.get("displayName"),
        user_agent=get_user_agent(),
        ip_address=get_client_ip(),
    )
    return jsonify(result.to_dict()), 200


@auth_bp.route("/login", methods=["POST"])
def login():
    data = _json_body()
    result = auth_service.login(
        data.get("email"),
        data.get("password"),
        user_agent=get_user_agent(),
        ip_address=get_client_ip(),
    )
    return jsonify({
        "access_token": result.access_token,
        "token": result.session.token,
        "expires_at": result.session.to_dict()["expiresAt"],
        "user": result.user.to_dict(),
    }), 200


@auth_bp.route("/logout", methods=["POST"])
def logout():
    token = get_request_token()
    if not token:
        return jsonify({"error": "Missing or invalid Authorization header."}), 401

    if not auth_service.logout(token):
        return jsonify({"error": "Session not found."}), 404
    return "", 204


@auth_bp.route("/logout-all", methods=["POST"])
def logout_all():
    token = get_request_token()
    if not token:
        return jsonify({"error": "Missing or invalid Authorization header."}), 401

    auth_service.logout_all(token)
    return "", 204


@auth_bp.route("/me", methods=["GET"])
@require_auth
def me():
    return jsonify(g.current_user), 200
