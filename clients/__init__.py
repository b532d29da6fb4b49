from dataclasses import dataclass
from flask import current_app

from .identity_client import IdentityClient, LocalIdentityClient, CachedIdentityClient
from .quota_client import QuotaClient, LocalQuotaClient
from .audit_client import AuditClient, LocalAuditClient

EXTENSION_KEY = 'minidrive.clients'


@dataclass
class ServiceClients:
    identity: object
    quota: object
    audit: object


def build_clients(config, hosted_services) -> ServiceClients:
    """In-process adapters for hosted services, HTTP clients for everything else."""
    hosted = set(hosted_services)

    if 'identity' in hosted:
        identity = LocalIdentityClient()
    else:
        identity = CachedIdentityClient(
            IdentityClient.from_config(config, 'IDENTITY_SERVICE_URL'),
            config.get('IDENTITY_CACHE_TTL_SECONDS', 300),
            config.get('IDENTITY_CACHE_MAX_ENTRIES', 10000),
        )

    quota = LocalQuotaClient() if 'quota' in hosted else QuotaClient.from_config(config, 'QUOTA_SERVICE_URL')
    audit = LocalAuditClient() if 'audit' in hosted else AuditClient.from_config(config, 'AUDIT_SERVICE_URL')

    return ServiceClients(identity=identity, quota=quota, audit=audit)


def init_clients(app, hosted_services):
    app.extensions[EXTENSION_KEY] = build_clients(app.config, hosted_services)


def get_clients() -> ServiceClients:
    return current_app.extensions[EXTENSION_KEY]


__all__ = [
    "ServiceClients",
    "build_clients",
    "init_clients",
    "get_clients",
    "IdentityClient",
    "LocalIdentityClient",
    "CachedIdentityClient",
    "QuotaClient",
    "LocalQuotaClient",
    "AuditClient",
    "LocalAuditClient",
]
