# routes/gateway_routes.py

from flask import Blueprint, Response, current_app, jsonify, request
from services.gateway_service import ReverseProxy, ProxyError

gateway_bp = Blueprint("gateway", __name__)

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def get_proxy() -> ReverseProxy:
    proxy = current_app.extensions.get('minidrive.proxy')
    if proxy is None:
        proxy = current_app.extensions['minidrive.proxy'] = ReverseProxy(current_app.config)
    return proxy


@gateway_bp.route("/health/aggregate", methods=["GET"])
def aggregate_health():
    report = get_proxy().aggregate_health()
    return jsonify(report), 200 if report["status"] == "healthy" else 503


@gateway_bp.route("/api/<path:subpath>", methods=PROXY_METHODS)
def proxy(subpath):
    proxy = get_proxy()
    if proxy.resolve(request.path) is None:
        return jsonify({"error": f"No service handles {request.path}."}), 404

    try:
        upstream = proxy.forward(
            request.method,
            request.path,
            request.query_string,
            request.headers,
            request.get_data(),
            request.remote_addr,
        )
    except ProxyError as e:
        return jsonify({"error": e.message}), 502

    return Response(upstream.content, status=upstream.status_code,
                    headers=proxy.response_headers(upstream.headers))
