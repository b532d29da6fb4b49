import logging
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)

RETRY_STATUSES = (502, 503, 504)


def build_session(retry_total: int = 3, backoff_factor: float = 2.0) -> requests.Session:
    """requests session that retries idempotent calls on gateway errors."""
    retry = Retry(
        total=retry_total,
        connect=retry_total,
        read=retry_total,
        status=retry_total,
        backoff_factor=backoff_factor,
        status_forcelist=RETRY_STATUSES,
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session = requests.Session()
    session.mount('http://', adapter)
    session.mount('https://', adapter)
    return session


class ServiceHttpClient:
    """Base class for calling another MiniDrive service over HTTP"""

    service_name = "service"

    def __init__(self, base_url: str, timeout: float = 10.0, retry_total: int = 3,
                 backoff_factor: float = 2.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or build_session(retry_total, backoff_factor)

    @classmethod
    def from_config(cls, config, url_key: str):
        return cls(
            config[url_key],
            timeout=config.get('SERVICE_TIMEOUT_SECONDS', 10.0),
            retry_total=config.get('SERVICE_RETRY_TOTAL', 3),
            backoff_factor=config.get('SERVICE_RETRY_BACKOFF', 2.0),
        )

    def _request(self, method: str, path: str, **kwargs) -> Optional[requests.Response]:
        """Send a request; connection failures are logged and yield None."""
        url = f"{self.base_url}{path}"
        kwargs.setdefault('timeout', self.timeout)
        try:
            return self.session.request(method, url, **kwargs)
        except requests.RequestException as e:
            logger.error(f"{self.service_name} call failed: {method} {url} - {str(e)}")
            return None
