import hashlib
import logging
import threading
import time
from typing import Optional

from .http import ServiceHttpClient

logger = logging.getLogger(__name__)


class IdentityClient(ServiceHttpClient):
    service_name = "Identity"

    def validate_session(self, token: str) -> Optional[dict]:
        if not token:
            return None
        response = self._request('GET', '/api/auth/me', headers={'Authorization': f'Bearer {token}'})
        if response is None or response.status_code != 200:
            return None
        return response.json()


class LocalIdentityClient:
    """Validates tokens against the Identity service hosted in this process"""

    def validate_session(self, token: str) -> Optional[dict]:
        from services.auth_service import AuthService

        user = AuthService().validate_session(token)
        return user.to_dict() if user else None


class CachedIdentityClient:
    """
    Keeps successful validations for ``ttl_seconds``.

    Entries are keyed by the SHA-256 of the token so raw tokens are never held
    in memory. Failed validations are not cached. Expired entries are dropped
    on every write and at most ``max_entries`` are kept, oldest evicted first.
    """

    def __init__(self, inner, ttl_seconds: int = 300, max_entries: int = 10000):
        self.inner = inner
        self.ttl_seconds = ttl_seconds
        self.max_entries = max(1, max_entries)
        self._cache = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(token: str) -> str:
        return hashlib.sha256(token.encode('utf-8')).hexdigest()

    def validate_session(self, token: str) -> Optional[dict]:
        if not token:
            return None

        key = self._key(token)
        now = time.monotonic()
        with self._lock:
            cached = self._cache.get(key)
            if cached and cached[0] > now:
                return cached[1]
            self._cache.pop(key, None)

        user = self.inner.validate_session(token)
        if user:
            with self._lock:
                self._cache.pop(key, None)
                self._cache[key] = (now + self.ttl_seconds, user)
                self._prune(now)
        return user

    def _prune(self, now: float):
        # Insertion order is expiry order, so stale entries sit at the front
        while self._cache:
            oldest = next(iter(self._cache))
            if self._cache[oldest][0] > now and len(self._cache) <= self.max_entries:
                break
            del self._cache[oldest]

    def invalidate(self, token: str):
        with self._lock:
            self._cache.pop(self._key(token), None)

    def clear(self):
        with self._lock:
            self._cache.clear()
