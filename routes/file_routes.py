# routes/file_routes.py

from flask import Blueprint, current_app, jsonify, request, send_file
from clients import get_clients
from models.file import format_file_size
from services.file_service import FileService, FileServiceError
from services.file_storage_service import LocalFileStorage
from utils.pagination import Pagination
from utils.security import current_user_id, get_client_ip, get_user_agent, require_auth

file_bp = Blueprint("files", __name__)


def get_file_service() -> FileService:
    clients = get_clients()
    return FileService(LocalFileStorage.from_config(current_app.config), clients.quota, clients.audit)


@file_bp.route("/upload", methods=["POST"])
@require_auth
def upload_file():
    """
    Upload one file as multipart form data.

    Form fields:
    - file: the file content (required)
    - folderId: target folder (optional, root when omitted)
    - description: free text (optional)
    """
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        raise FileServiceError("No file provided.", 400, 'NO_FILE')

    entry = get_file_service().upload(
        upload.stream,
        upload.filename,
        upload.mimetype or "application/octet-stream",
        current_user_id(),
        folder_id=request.form.get("folderId") or None,
        description=request.form.get("description"),
        ip_address=get_client_ip(),
        user_agent=get_user_agent(),
    )
    return jsonify(entry.to_dict()), 200


@file_bp.route("/<file_id>/download", methods=["GET"])
@require_auth
def download_file(file_id):
    entry, stream = get_file_service().download(file_id, current_user_id())
    return send_file(
        stream,
        mimetype=entry.content_type,
        as_attachment=True,
        download_name=entry.file_name,
    )


@file_bp.route("/<file_id>", methods=["GET"])
@require_auth
def get_file(file_id):
    return jsonify(get_file_service().get(file_id, current_user_id()).to_dict()), 200


@file_bp.route("", methods=["GET"])
@require_auth
def list_files():
    result = get_file_service().list(
        current_user_id(),
        folder_id=request.args.get("folderId") or None,
        search=request.args.get("search"),
        pagination=Pagination.from_request(request.args),
    )
    return jsonify(result.to_dict(lambda entry: entry.to_dict())), 200


@file_bp.route("/<file_id>", methods=["PUT"])
@require_auth
def update_file(file_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "JSON body expected."}), 400

    entry = get_file_service().update(
        file_id,
        current_user_id(),
        file_name=data.get("fileName"),
        description=data.get("description"),
        folder_id=data.get("folderId"),
        ip_address=get_client_ip(),
        user_agent=get_user_agent(),
    )
    return jsonify(entry.to_dict()), 200


@file_bp.route("/<file_id>", methods=["DELETE"])
@require_auth
def delete_file(file_id):
    get_file_service().delete(file_id, current_user_id(), get_client_ip(), get_user_agent())
    return "", 204


@file_bp.route("/<file_id>/permanent", methods=["DELETE"])
@require_auth
def permanently_delete_file(file_id):
    get_file_service().permanently_delete(file_id, current_user_id(), get_client_ip(), get_user_agent())
    return "", 204


@file_bp.route("/storage/used", methods=["GET"])
@require_auth
def storage_used():
    total = get_file_service().total_storage_used(current_user_id())
    return jsonify({"totalBytes": total, "formattedSize": format_file_size(total)}), 200
