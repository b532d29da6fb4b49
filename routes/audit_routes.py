# routes/audit_routes.py

from flask import Blueprint, jsonify, request
from services.audit_service import AuditService, parse_date
from utils.security import current_user_id, require_auth

audit_bp = Blueprint("audit", __name__)
audit_service = AuditService()


def _query_window():
    """
    Common query parameters:
    - limit: maximum number of entries (newest first)
    - from: lower bound on created time (YYYY-MM-DD or ISO-8601)
    - to: upper bound on created time
    """
    return {
        'limit': request.args.get('limit', type=int),
        'from_date': parse_date(request.args.get('from')),
        'to_date': parse_date(request.args.get('to'), end_of_day=True),
    }


def _render(entries):
    return jsonify([entry.to_dict() for entry in entries]), 200


@audit_bp.route("/log", methods=["POST"])
def log_action():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "JSON body expected."}), 400

    audit_service.log_action(
        data.get("userId"),
        data.get("action"),
        data.get("entityType"),
        data.get("entityId"),
        is_success=data.get("isSuccess", True),
        details=data.get("details"),
        error_message=data.get("errorMessage"),
        ip_address=data.get("ipAddress"),
        user_agent=data.get("userAgent"),
    )
    return jsonify({"success": True}), 200


@audit_bp.route("/user/<user_id>", methods=["GET"])
@require_auth
def get_user_logs(user_id):
    return _render(audit_service.get_by_user(user_id, **_query_window()))


@audit_bp.route("/entity/<entity_type>/<entity_id>", methods=["GET"])
@require_auth
def get_entity_logs(entity_type, entity_id):
    return _render(audit_service.get_by_entity(entity_type, entity_id, request.args.get('limit', type=int)))


@audit_bp.route("/action/<action>", methods=["GET"])
@require_auth
def get_action_logs(action):
    return _render(audit_service.get_by_action(action, **_query_window()))


@audit_bp.route("", methods=["GET"])
@require_auth
def get_all_logs():
    return _render(audit_service.get_all(**_query_window()))


@audit_bp.route("/me", methods=["GET"])
@require_auth
def get_my_logs():
    return _render(audit_service.get_by_user(current_user_id(), **_query_window()))
