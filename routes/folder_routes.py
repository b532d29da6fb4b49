# routes/folder_routes.py

from flask import Blueprint, jsonify, request
from clients import get_clients
from services.folder_service import FolderService, UNSET
from utils.pagination import Pagination
from utils.security import current_user_id, get_client_ip, get_user_agent, require_auth

folder_bp = Blueprint("folders", __name__)


def get_folder_service() -> FolderService:
    return FolderService(get_clients().audit)


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


@folder_bp.route("", methods=["POST"])
@require_auth
def create_folder():
    data = _json_body()
    if data is None:
        return jsonify({"error": "JSON body expected."}), 400

    folder = get_folder_service().create(
        data.get("name"),
        current_user_id(),
        parent_folder_id=data.get("parentFolderId"),
        description=data.get("description"),
        color=data.get("color"),
        ip_address=get_client_ip(),
        user_agent=get_user_agent(),
    )
    return jsonify(folder.to_dict()), 200


@folder_bp.route("/<folder_id>", methods=["GET"])
@require_auth
def get_folder(folder_id):
    return jsonify(get_folder_service().get(folder_id, current_user_id()).to_dict()), 200


@folder_bp.route("", methods=["GET"])
@require_auth
def list_folders():
    result = get_folder_service().list(
        current_user_id(),
        parent_folder_id=request.args.get("parentFolderId") or None,
        search=request.args.get("search"),
        pagination=Pagination.from_request(request.args),
    )
    return jsonify(result.to_dict(lambda folder: folder.to_dict())), 200


@folder_bp.route("/<folder_id>/path", methods=["GET"])
@require_auth
def get_folder_path(folder_id):
    breadcrumb = get_folder_service().path(folder_id, current_user_id())
    return jsonify([folder.to_dict() for folder in breadcrumb]), 200


@folder_bp.route("/<folder_id>", methods=["PUT"])
@require_auth
def update_folder(folder_id):
    """
    Update a folder. ``parentFolderId`` moves it; an explicit null moves it
    to the root and an absent key leaves the parent unchanged.
    """
    data = _json_body()
    if data is None:
        return jsonify({"error": "JSON body expected."}), 400

    folder = get_folder_service().update(
        folder_id,
        current_user_id(),
        name=data.get("name"),
        description=data.get("description"),
        color=data.get("color"),
        parent_folder_id=data["parentFolderId"] if "parentFolderId" in data else UNSET,
        ip_address=get_client_ip(),
        user_agent=get_user_agent(),
    )
    return jsonify(folder.to_dict()), 200


@folder_bp.route("/<folder_id>", methods=["DELETE"])
@require_auth
def delete_folder(folder_id):
    get_folder_service().delete(folder_id, current_user_id(), get_client_ip(), get_user_agent())
    return "", 204
