#!/usr/bin/env python3
"""
Database Maintenance Tools

Housekeeping for a MiniDrive deployment:
- Purge expired login sessions
- Delete audit entries older than a retention window
- Recompute quota usage from the files actually stored

Usage:
    python scripts/maintenance_tools.py --cleanup-sessions
    python scripts/maintenance_tools.py --cleanup-audit 90
    python scripts/maintenance_tools.py --sync-quotas
"""

import sys
import os
import argparse
import logging
from typing import Dict

from sqlalchemy import func

# Add the project root to the Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from extensions import db  # noqa: E402
from models.file import FileEntry  # noqa: E402
from models.quota import UserQuota  # noqa: E402
from services.audit_service import AuditService  # noqa: E402
from services.auth_service import AuthService  # noqa: E402
from services.quota_service import QuotaService  # noqa: E402
from utils.performance_logger import PerformanceTracker  # noqa: E402

logger = logging.getLogger(__name__)


class MaintenanceToolsSuite:
    """Maintenance operations; each must run inside an application context"""

    def __init__(self, hosted_services):
        self.hosted = set(hosted_services)

    def _require(self, *services):
        missing = [name for name in services if name not in self.hosted]
        if missing:
            raise RuntimeError(f"This process does not host: {', '.join(missing)}")

    def cleanup_sessions(self) -> int:
        self._require("identity")
        removed = AuthService().cleanup()
        logger.info(f"Removed {removed} expired session(s)")
        return removed

    def cleanup_audit(self, days_to_keep: int) -> int:
        self._require("audit")
        if days_to_keep < 1:
            raise ValueError("Retention must be at least one day.")
        removed = AuditService().cleanup(days_to_keep)
        logger.info(f"Removed {removed} audit entr(y/ies) older than {days_to_keep} days")
        return removed

    def sync_quotas(self) -> Dict[str, int]:
        """Set every quota's used bytes to the size of the owner's non-deleted files."""
        self._require("files", "quota")
        with PerformanceTracker("maintenance.sync_quotas", log_threshold_ms=1000.0):
            totals = dict(
                db.session.query(FileEntry.owner_id, func.sum(FileEntry.size_bytes))
                .filter(FileEntry.is_deleted == False)  # noqa: E712
                .group_by(FileEntry.owner_id)
                .all()
            )

            quota_service = QuotaService()
            synced = {}
            for quota in UserQuota.query.all():
                used = int(totals.get(quota.user_id) or 0)
                if quota.used_bytes != used:
                    logger.info(f"Quota drift for user {quota.user_id}: {quota.used_bytes} -> {used}")
                quota_service.sync_used_bytes(quota.user_id, used)
                synced[quota.user_id] = used
        return synced


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="MiniDrive Maintenance Tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python maintenance_tools.py --cleanup-sessions     # Purge expired sessions
  python maintenance_tools.py --cleanup-audit 90     # Keep 90 days of audit trail
  python maintenance_tools.py --sync-quotas          # Recompute quota usage
        """
    )

    parser.add_argument(
        '--cleanup-sessions',
        action='store_true',
        help='Delete expired login sessions'
    )

    parser.add_argument(
        '--cleanup-audit',
        type=int,
        metavar='DAYS',
        help='Delete audit entries older than DAYS days'
    )

    parser.add_argument(
        '--sync-quotas',
        action='store_true',
        help='Recompute used bytes from non-deleted files (files and quota must share a database)'
    )

    args = parser.parse_args(argv)

    if not any([args.cleanup_sessions, args.cleanup_audit is not None, args.sync_quotas]):
        parser.print_help()
        return 1

    from app import create_app

    app = create_app()
    with app.app_context():
        suite = MaintenanceToolsSuite(app.config["MINIDRIVE_HOSTED_SERVICES"])
        try:
            if args.cleanup_sessions:
                print(f"Expired sessions removed: {suite.cleanup_sessions()}")
            if args.cleanup_audit is not None:
                print(f"Audit entries removed: {suite.cleanup_audit(args.cleanup_audit)}")
            if args.sync_quotas:
                print(f"Quotas synchronized: {len(suite.sync_quotas())}")
        except (RuntimeError, ValueError) as e:
            print(f"Maintenance failed: {e}")
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
