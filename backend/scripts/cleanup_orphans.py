#!/usr/bin/env python
"""
Script to find and clean up orphaned platform records.

Can be run via:
- Cron: 0 3 * * * cd /path/to/backend && python scripts/cleanup_orphans.py --type team_without_hackathon --reason "Nightly cleanup" --admin-id system --admin-email ops@example.com
- Manual: python scripts/cleanup_orphans.py --type submission_without_hackathon --dry-run

Options:
    --type TYPE: Orphan type to clean up (required)
    --reason TEXT: Reason recorded in the audit log (required unless --dry-run)
    --admin-id ID / --admin-email EMAIL: Admin recorded as performing the cleanup
    --no-backup: Skip the backup audit entry before deleting
    --limit N: Maximum records to scan (default: ORPHAN_DETECTION_DEFAULT_LIMIT)
    --dry-run: Show what would be deleted without actually deleting
"""

import argparse
import sys
from pathlib import Path

# Add the backend directory to the path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from loguru import logger
from sqlalchemy.orm import Session

from core.logging_config import configure_logging
from models.exceptions import ValidationException
from models.moderation_types import OrphanType
from models.schemas import OrphanDetectionFilters
from repositories.database import SessionLocal
from services.data_management_service import DataManagementService


def main(argv: list[str] | None = None) -> int:
    """Run the orphan cleanup."""
    parser = argparse.ArgumentParser(description="Clean up orphaned records")
    parser.add_argument(
        "--type",
        required=True,
        choices=[orphan_type.value for orphan_type in OrphanType],
        help="Orphan type to clean up",
    )
    parser.add_argument("--reason", help="Reason recorded in the audit log")
    parser.add_argument("--admin-id", default="system", help="Acting admin ID")
    parser.add_argument(
        "--admin-email", default="system@localhost", help="Acting admin email"
    )
    parser.add_argument(
        "--no-backup",
        action="store_true",
        help="Delete without writing a backup entry first",
    )
    parser.add_argument(
        "--limit", type=int, default=None, help="Maximum records to scan"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be deleted without actually deleting",
    )

    args = parser.parse_args(argv)
    configure_logging()

    db: Session = SessionLocal()
    try:
        if args.dry_run:
            result = DataManagementService.detect_orphans(
                db, OrphanDetectionFilters(types=[args.type], limit=args.limit)
            )
            logger.info(
                f"[DRY RUN] Would delete {result.summary.total_orphans} "
                f"{args.type} records"
            )
            for orphan in result.orphans:
                logger.info(
                    f"[DRY RUN] {orphan.table_name} #{orphan.id}: missing "
                    f"{orphan.missing_reference.table} #{orphan.missing_reference.expected_id}"
                )
            return 0

        cleanup = DataManagementService.cleanup_orphans_by_type(
            db,
            orphan_type=args.type,
            reason=args.reason or "",
            admin_id=args.admin_id,
            admin_email=args.admin_email,
            create_backup=not args.no_backup,
            limit=args.limit,
        )
        logger.info(
            f"Deleted {cleanup.deleted}/{cleanup.total} {args.type} records "
            f"({cleanup.failed} failed, backup: {cleanup.backup_id or 'none'})"
        )
        return 0 if cleanup.failed == 0 else 1
    except ValidationException as e:
        logger.error(f"Invalid cleanup request: {e.message}")
        return 2
    except Exception as e:
        logger.error(f"Orphan cleanup failed: {e}")
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
