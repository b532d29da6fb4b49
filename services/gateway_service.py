import logging
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

import requests

from clients.http import build_session

logger = logging.getLogger(__name__)

# Path prefix -> (service name, config key holding its base URL)
ROUTE_TABLE = {
    "/api/auth": ("identity", "IDENTITY_SERVICE_URL"),
    "/api/files": ("files", "FILES_SERVICE_URL"),
    "/api/folders": ("folders", "FOLDERS_SERVICE_URL"),
    "/api/quota": ("quota", "QUOTA_SERVICE_URL"),
    "/api/audit": ("audit", "AUDIT_SERVICE_URL"),
    "/api/shares": ("sharing", "SHARING_SERVICE_URL"),
}

HOP_BY_HOP_HEADERS = {
    "connection", "keep-alive", "proxy-authenticate", "proxy-authorization",
    "te", "trailers", "transfer-encoding", "upgrade",
}

# Recomputed by the HTTP stack on each leg
SKIPPED_REQUEST_HEADERS = HOP_BY_HOP_HEADERS | {"host", "content-length"}
SKIPPED_RESPONSE_HEADERS = HOP_BY_HOP_HEADERS | {"content-length", "content-encoding"}


class ProxyError(Exception):
    """Downstream service could not be reached"""
    def __init__(self, service: str, message: str):
        self.service = service
        self.message = message
        super().__init__(message)


class ReverseProxy:
    """Forwards /api/* calls to the owning service"""

    def __init__(self, config, session: Optional[requests.Session] = None):
        self.targets = {
            prefix: (name, config[key].rstrip('/')) for prefix, (name, key) in ROUTE_TABLE.items()
        }
        self.timeout = config.get('SERVICE_TIMEOUT_SECONDS', 10.0)
        self.session = session or build_session(
            config.get('SERVICE_RETRY_TOTAL', 3), config.get('SERVICE_RETRY_BACKOFF', 2.0)
        )

    def resolve(self, path: str) -> Optional[Tuple[str, str]]:
        for prefix, target in self.targets.items():
            if path == prefix or path.startswith(prefix + "/"):
                return target
        return None

    @staticmethod
    def forward_headers(headers, remote_addr: Optional[str]) -> Dict[str, str]:
        forwarded = {k: v for k, v in headers.items() if k.lower() not in SKIPPED_REQUEST_HEADERS}
        if remote_addr:
            prior = forwarded.pop("X-Forwarded-For", None)
            forwarded["X-Forwarded-For"] = f"{prior}, {remote_addr}" if prior else remote_addr
        return forwarded

    @staticmethod
    def response_headers(headers) -> Dict[str, str]:
        return {k: v for k, v in headers.items() if k.lower() not in SKIPPED_RESPONSE_HEADERS}

    def forward(self, method: str, path: str, query_string: bytes, headers, body: bytes,
                remote_addr: Optional[str]) -> requests.Response:
        target = self.resolve(path)
        if target is None:
            raise LookupError(path)
        name, base_url = target

        url = f"{base_url}{path}"
        if query_string:
            url = f"{url}?{query_string.decode('latin-1')}"

        try:
            return self.session.request(
                method,
                url,
                headers=self.forward_headers(headers, remote_addr),
                data=body,
                timeout=self.timeout,
                allow_redirects=False,
            )
        except requests.RequestException as e:
            logger.error(f"Proxy to {name} failed: {method} {url} - {str(e)}")
            raise ProxyError(name, f"Service '{name}' is unavailable.")

    def aggregate_health(self) -> dict:
        services = {}
        for name, base_url in self.targets.values():
            try:
                response = self.session.get(f"{base_url}/health", timeout=self.timeout)
                body = response.json() if response.status_code == 200 else None
                healthy = isinstance(body, dict) and body.get("status") == "healthy"
            except (requests.RequestException, ValueError) as e:
                logger.warning(f"Health check for {name} failed: {str(e)}")
                healthy = False
            services[name] = "healthy" if healthy else "unhealthy"

        overall = "healthy" if all(status == "healthy" for status in services.values()) else "degraded"
        return {
            "status": overall,
            "service": "Gateway",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "services": services,
        }
