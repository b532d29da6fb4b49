# routes/quota_routes.py

from flask import Blueprint, jsonify, request
from services.quota_service import QuotaService, QuotaError
from utils.security import current_user_id, require_auth

quota_bp = Blueprint("quota", __name__)
quota_service = QuotaService()


def _int_field(data, key):
    value = data.get(key) if isinstance(data, dict) else None
    if isinstance(value, bool) or not isinstance(value, int):
        raise QuotaError(f"'{key}' must be an integer.", 400, 'INVALID_AMOUNT')
    return value


@quota_bp.route("/me", methods=["GET"])
@require_auth
def get_my_quota():
    return jsonify(quota_service.get_or_create(current_user_id()).to_dict()), 200


@quota_bp.route("/<user_id>", methods=["GET"])
def get_quota(user_id):
    quota = quota_service.get(user_id)
    if quota is None:
        return jsonify({"error": "Quota not found."}), 404
    return jsonify(quota.to_dict()), 200


@quota_bp.route("/<user_id>/can-upload", methods=["GET"])
def can_upload(user_id):
    file_size = request.args.get("fileSize", type=int)
    if file_size is None:
        raise QuotaError("'fileSize' query parameter is required.", 400, 'INVALID_AMOUNT')
    return jsonify({"canUpload": quota_service.can_upload(user_id, file_size)}), 200


@quota_bp.route("/<user_id>/increase", methods=["POST"])
def increase(user_id):
    if not quota_service.increase(user_id, _int_field(request.get_json(silent=True), "bytes")):
        return jsonify({"error": "Failed to increase quota."}), 400
    return jsonify({"success": True}), 200


@quota_bp.route("/<user_id>/decrease", methods=["POST"])
def decrease(user_id):
    if not quota_service.decrease(user_id, _int_field(request.get_json(silent=True), "bytes")):
        return jsonify({"error": "Failed to decrease quota."}), 400
    return jsonify({"success": True}), 200


@quota_bp.route("/<user_id>/limit", methods=["PUT"])
def update_limit(user_id):
    if not quota_service.update_limit(user_id, _int_field(request.get_json(silent=True), "limitBytes")):
        return jsonify({"error": "Failed to update quota limit."}), 400
    return jsonify({"success": True}), 200


@quota_bp.route("/<user_id>/sync", methods=["POST"])
def sync_used_bytes(user_id):
    if not quota_service.sync_used_bytes(user_id, _int_field(request.get_json(silent=True), "usedBytes")):
        return jsonify({"error": "Failed to sync quota usage."}), 400
    return jsonify({"success": True}), 200
