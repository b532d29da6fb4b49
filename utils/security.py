from functools import wraps
from typing import Optional
from flask import g, jsonify, request
import logging

logger = logging.getLogger(__name__)


def extract_bearer_token(header_value: Optional[str]) -> Optional[str]:
    """
    Pull the token out of an Authorization header.

    The "Bearer" prefix is matched case-insensitively; a header without the
    prefix is taken to be the raw token.
    """
    value = header_value.strip() if header_value else ""
    if not value:
        return None
    scheme, _, rest = value.partition(" ")
    if scheme.lower() == "bearer":
        return rest.strip() or None
    return value


def get_request_token() -> Optional[str]:
    return extract_bearer_token(request.headers.get("Authorization"))


def get_client_ip() -> Optional[str]:
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    return request.remote_addr


def get_user_agent() -> Optional[str]:
    return request.headers.get("User-Agent")


def current_user_id() -> str:
    return g.current_user["id"]


def require_auth(f):
    """
    Protect a route with a session-backed JWT.

    The token is validated through the identity client configured for the app
    (in-process or remote). On success the user dict is stored in
    ``g.current_user``.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        from clients import get_clients

        token = get_request_token()
        if not token:
            return jsonify({"error": "Missing or invalid Authorization header."}), 401

        user = get_clients().identity.validate_session(token)
        if not user:
            logger.debug(f"Rejected token on {request.method} {request.path}")
            return jsonify({"error": "Invalid or expired token."}), 401

        g.current_user = user
        g.access_token = token
        return f(*args, **kwargs)
    return decorated_function
