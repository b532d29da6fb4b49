# routes/share_routes.py

from flask import Blueprint, jsonify, request
from clients import get_clients
from services.share_service import ShareService, ShareError
from utils.security import current_user_id, get_client_ip, get_user_agent, require_auth

share_bp = Blueprint("shares", __name__)

# JSON keys accepted by PUT /<id>
UPDATE_FIELDS = {
    "permission": "permission",
    "expiresAt": "expires_at",
    "isActive": "is_active",
    "password": "password",
    "maxDownloads": "max_downloads",
    "notes": "notes",
}


def get_share_service() -> ShareService:
    return ShareService(get_clients().audit)


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ShareError("JSON body expected.", 400, 'INVALID_BODY')
    return data


def _render_list(shares):
    return jsonify([share.to_dict() for share in shares]), 200


@share_bp.route("", methods=["POST"])
@require_auth
def create_share():
    data = _json_body()
    share = get_share_service().create(
        current_user_id(),
        data.get("resourceId"),
        data.get("resourceType"),
        permission=data.get("permission") or "view",
        is_public_share=bool(data.get("isPublicShare", False)),
        shared_with_user_id=data.get("sharedWithUserId"),
        expires_at=data.get("expiresAt"),
        password=data.get("password"),
        max_downloads=data.get("maxDownloads"),
        notes=data.get("notes"),
        ip_address=get_client_ip(),
        user_agent=get_user_agent(),
    )
    return jsonify(share.to_dict()), 201


@share_bp.route("/<share_id>", methods=["GET"])
@require_auth
def get_share(share_id):
    return jsonify(get_share_service().get(share_id, current_user_id()).to_dict()), 200


@share_bp.route("/public/<token>", methods=["GET"])
def get_public_share(token):
    return jsonify(get_share_service().get_public(token).to_dict()), 200


@share_bp.route("/public/<token>/access", methods=["POST"])
def access_public_share(token):
    data = request.get_json(silent=True) or {}
    share = get_share_service().access_public(
        token,
        data.get("password") if isinstance(data, dict) else None,
        ip_address=get_client_ip(),
        user_agent=get_user_agent(),
    )
    return jsonify(share.to_dict()), 200


@share_bp.route("/my-shares", methods=["GET"])
@require_auth
def my_shares():
    return _render_list(get_share_service().list_owned(current_user_id()))


@share_bp.route("/shared-with-me", methods=["GET"])
@require_auth
def shared_with_me():
    return _render_list(get_share_service().list_shared_with(current_user_id()))


@share_bp.route("/resource/<resource_id>", methods=["GET"])
@require_auth
def resource_shares(resource_id):
    resource_type = request.args.get("resourceType")
    if not resource_type:
        raise ShareError("resourceType query parameter is required.", 400, 'INVALID_RESOURCE_TYPE')
    return _render_list(get_share_service().list_for_resource(resource_id, resource_type, current_user_id()))


@share_bp.route("/<share_id>", methods=["PUT"])
@require_auth
def update_share(share_id):
    data = _json_body()
    changes = {field: data[key] for key, field in UPDATE_FIELDS.items() if key in data}
    share = get_share_service().update(
        share_id, current_user_id(), changes, get_client_ip(), get_user_agent()
    )
    return jsonify(share.to_dict()), 200


@share_bp.route("/<share_id>", methods=["DELETE"])
@require_auth
def delete_share(share_id):
    get_share_service().delete(share_id, current_user_id(), get_client_ip(), get_user_agent())
    return "", 204
