"""
Data Management Service: orphan detection and cleanup.

An orphan is a child row whose referenced parent row no longer exists.
Detection resolves parent references in batches; cleanup backs up the rows
to the audit log, re-checks each row at delete time and deletes rows one
at a time so a failure only affects its own item.
"""

import math
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any, NamedTuple, Optional, Union

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.clock import Clock, system_clock
from core.correlation import operation_scope
from core.id_generator import IdGenerator, default_id_generator
from helpers.time_utils import parse_datetime
from models.config import settings
from models.exceptions import (
    CleanupValidationException,
    OrphanFilterValidationException,
    StorageException,
)
from models.moderation_types import AuditActionType, AuditTargetType, OrphanType
from models.schemas import (
    CleanupError,
    CleanupHistoryEntry,
    CleanupRequest,
    CleanupResult,
    CreateAuditLogInput,
    MissingReference,
    OrphanDetectionFilters,
    OrphanDetectionResult,
    OrphanDetectionSummary,
    OrphanRecord,
    OrphanSummary,
    RecordId,
    StorageStats,
    StorageUsage,
    ValidationResult,
)
from repositories.audit_log_repository import AuditLogRepository
from repositories.integrity_repository import IntegrityRepository
from services.audit_service import AuditService


class OrphanRelation(NamedTuple):
    """Child table, the parent it points at and the referencing column."""

    table: str
    reference_table: str
    reference_column: str
    # Parent column holding the referenced value
    parent_column: str = "id"
    # Null references are allowed and never make a row an orphan
    optional: bool = False


ORPHAN_TYPE_TABLE_MAP: dict[OrphanType, OrphanRelation] = {
    OrphanType.HACKATHON_WITHOUT_ORGANIZER: OrphanRelation(
        "organizer_hackathons", "organizer_profiles", "organizer_id", "user_id"
    ),
    OrphanType.REGISTRATION_WITHOUT_USER: OrphanRelation(
        "hackathon_registrations", "profiles", "user_id", optional=True
    ),
    OrphanType.REGISTRATION_WITHOUT_HACKATHON: OrphanRelation(
        "hackathon_registrations", "organizer_hackathons", "hackathon_id"
    ),
    OrphanType.TEAM_WITHOUT_HACKATHON: OrphanRelation(
        "hackathon_teams", "organizer_hackathons", "hackathon_id"
    ),
    OrphanType.SUBMISSION_WITHOUT_HACKATHON: OrphanRelation(
        "hackathon_submissions", "organizer_hackathons", "hackathon_id"
    ),
    OrphanType.SUBMISSION_WITHOUT_TEAM: OrphanRelation(
        "hackathon_submissions", "hackathon_teams", "team_id", optional=True
    ),
    OrphanType.CERTIFICATE_WITHOUT_GENERATOR: OrphanRelation(
        "certificates", "profiles", "generated_by", optional=True
    ),
    OrphanType.FEEDBACK_WITHOUT_HACKATHON: OrphanRelation(
        "hackathon_participant_feedback", "organizer_hackathons", "hackathon_id"
    ),
    OrphanType.ANNOUNCEMENT_WITHOUT_HACKATHON: OrphanRelation(
        "hackathon_announcements", "organizer_hackathons", "hackathon_id"
    ),
}

VALID_ORPHAN_TYPES = frozenset(t.value for t in OrphanType)

# Rough per-row size estimates (bytes) by storage category
STORAGE_ESTIMATES: tuple[tuple[str, str, int], ...] = (
    ("hackathons", "organizer_hackathons", 5000),
    ("registrations", "hackathon_registrations", 2000),
    ("submissions", "hackathon_submissions", 10000),
    ("certificates", "certificates", 3000),
    ("teams", "hackathon_teams", 1500),
)
BYTE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")
LARGE_CATEGORY_BYTES = 1024**3
LARGE_CATEGORY_SHARE = 50.0

CLEANUP_HISTORY_LIMIT = 10


# ============================================================================
# Validation
# ============================================================================


def is_valid_orphan_type(value: Any) -> bool:
    value = value.value if isinstance(value, OrphanType) else value
    return isinstance(value, str) and value in VALID_ORPHAN_TYPES


def _as_mapping(data: Union[Mapping[str, Any], Any]) -> Mapping[str, Any]:
    if isinstance(data, Mapping):
        return data
    return data.model_dump()


def validate_orphan_detection_filters(
    filters: Union[OrphanDetectionFilters, Mapping[str, Any]],
) -> ValidationResult:
    """Types must be known orphan types; limit must be 1..ORPHAN_DETECTION_MAX_LIMIT."""
    data = _as_mapping(filters)
    errors: list[str] = []

    types = data.get("types")
    if types is not None:
        if not isinstance(types, (list, tuple)):
            errors.append("types must be an array")
        else:
            invalid = [str(t) for t in types if not is_valid_orphan_type(t)]
            if invalid:
                errors.append(f"Invalid orphan types: {', '.join(invalid)}")

    limit = data.get("limit")
    if limit is not None:
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            errors.append("limit must be a positive number")
        elif limit > settings.ORPHAN_DETECTION_MAX_LIMIT:
            errors.append(
                f"limit must not exceed {settings.ORPHAN_DETECTION_MAX_LIMIT}"
            )

    return ValidationResult.from_errors(errors)


def validate_cleanup_request(
    request: Union[CleanupRequest, Mapping[str, Any]],
) -> ValidationResult:
    """Collect every problem with a cleanup request."""
    data = _as_mapping(request)
    errors: list[str] = []

    orphan_ids = data.get("orphan_ids")
    if orphan_ids is None:
        errors.append("orphan_ids is required")
    elif not isinstance(orphan_ids, (list, tuple)):
        errors.append("orphan_ids must be an array")
    elif len(orphan_ids) == 0:
        errors.append("orphan_ids cannot be empty")

    orphan_type = data.get("orphan_type")
    if not orphan_type:
        errors.append("orphan_type is required")
    elif not is_valid_orphan_type(orphan_type):
        errors.append(f"Invalid orphan_type: {orphan_type}")

    reason = data.get("reason")
    if not reason:
        errors.append("reason is required")
    elif not isinstance(reason, str) or not reason.strip():
        errors.append("reason must be a non-empty string")

    create_backup = data.get("create_backup")
    if create_backup is None:
        errors.append("create_backup is required")
    elif not isinstance(create_backup, bool):
        errors.append("create_backup must be a boolean")

    return ValidationResult.from_errors(errors)


def _validate_admin(admin_id: Any, admin_email: Any) -> list[str]:
    errors = []
    if not isinstance(admin_id, str) or not admin_id.strip():
        errors.append("admin_id is required")
    if not isinstance(admin_email, str) or "@" not in admin_email:
        errors.append("admin_email must be a valid email address")
    return errors


# ============================================================================
# Pure record helpers
# ============================================================================


def create_orphan_record(
    record_id: RecordId,
    orphan_type: OrphanType,
    record_data: dict[str, Any],
    missing_id: Optional[RecordId],
    detected_at: datetime,
) -> OrphanRecord:
    relation = ORPHAN_TYPE_TABLE_MAP[OrphanType(orphan_type)]
    return OrphanRecord(
        id=record_id,
        type=orphan_type,
        table_name=relation.table,
        record_data=record_data,
        missing_reference=MissingReference(
            table=relation.reference_table,
            column=relation.reference_column,
            expected_id=missing_id,
        ),
        created_at=parse_datetime(record_data.get("created_at")),
        detected_at=detected_at,
    )


def create_orphan_detection_result(
    orphans: list[OrphanRecord], scanned_at: datetime
) -> OrphanDetectionResult:
    """Wrap orphans with a summary; every orphan type appears in ``by_type``."""
    by_type = {orphan_type.value: 0 for orphan_type in OrphanType}
    for orphan in orphans:
        by_type[orphan.type.value] += 1
    return OrphanDetectionResult(
        orphans=orphans,
        summary=OrphanDetectionSummary(total_orphans=len(orphans), by_type=by_type),
        scanned_at=scanned_at,
    )


def filter_orphans_by_type(
    orphans: Iterable[OrphanRecord], types: Iterable[OrphanType]
) -> list[OrphanRecord]:
    """Keep orphans of the given types; an empty type list keeps everything."""
    wanted = {OrphanType(t) for t in types}
    if not wanted:
        return list(orphans)
    return [orphan for orphan in orphans if orphan.type in wanted]


def verify_orphan_accuracy(orphan: OrphanRecord, parent_exists: bool) -> bool:
    """An orphan is genuine only while its parent is absent."""
    return not parent_exists


def verify_cleanup_result_accuracy(result: CleanupResult) -> bool:
    return result.deleted + result.failed == result.total


def create_cleanup_result(
    total: int,
    deleted_ids: list[RecordId],
    errors: list[CleanupError],
    backup_id: Optional[str] = None,
) -> CleanupResult:
    return CleanupResult(
        total=total,
        deleted=len(deleted_ids),
        failed=len(errors),
        errors=errors,
        backup_id=backup_id,
    )


def format_bytes(size: int) -> str:
    """
    Human-readable size with 1024 steps, e.g. ``1.5 KB``.

    Up to two decimals, trailing zeros dropped.
    """
    if size <= 0:
        return "0 Bytes"
    index = min(int(math.log(size, 1024)), len(BYTE_UNITS) - 1)
    # log() can land just below an exact power of 1024
    if index + 1 < len(BYTE_UNITS) and size >= 1024 ** (index + 1):
        index += 1
    value = round(size / 1024**index, 2)
    return f"{value:g} {BYTE_UNITS[index]}"


def create_storage_usage(
    category: str, size_bytes: int, file_count: int, last_updated: datetime
) -> StorageUsage:
    return StorageUsage(
        category=category,
        size_bytes=size_bytes,
        size_formatted=format_bytes(size_bytes),
        file_count=file_count,
        last_updated=last_updated,
    )


def create_storage_stats(usage: list[StorageUsage]) -> StorageStats:
    """Totals plus a cleanup recommendation for dominant or oversized categories."""
    total = sum(entry.size_bytes for entry in usage)
    recommendations: list[str] = []
    for entry in usage:
        share = entry.size_bytes / total * 100 if total > 0 else 0.0
        if share > LARGE_CATEGORY_SHARE:
            recommendations.append(
                f"{entry.category} uses {share:.1f}% of total storage. "
                "Consider cleanup."
            )
        if entry.size_bytes > LARGE_CATEGORY_BYTES:
            recommendations.append(
                f"{entry.category} exceeds 1GB. Review for unused files."
            )
    return StorageStats(
        total_size_bytes=total,
        total_size_formatted=format_bytes(total),
        by_category=usage,
        recommendations=recommendations,
    )


# ============================================================================
# Storage-backed operations
# ============================================================================


class DataManagementService:
    """Service for data integrity checks and orphan cleanup."""

    @staticmethod
    def _detect_type(
        repo: IntegrityRepository,
        orphan_type: OrphanType,
        limit: int,
        detected_at: datetime,
    ) -> list[OrphanRecord]:
        relation = ORPHAN_TYPE_TABLE_MAP[orphan_type]
        rows = repo.get_rows(relation.table, limit)
        existing = repo.find_existing_values(
            relation.reference_table,
            relation.parent_column,
            (row[relation.reference_column] for row in rows),
        )

        orphans = []
        for row in rows:
            reference = row[relation.reference_column]
            if reference is None and relation.optional:
                continue
            if reference is None or reference not in existing:
                orphans.append(
                    create_orphan_record(
                        row["id"], orphan_type, row, reference, detected_at
                    )
                )
        return orphans

    @staticmethod
    def detect_orphans(
        db: Session,
        filters: Optional[OrphanDetectionFilters] = None,
        clock: Clock = system_clock,
    ) -> OrphanDetectionResult:
        """
        Scan the requested orphan categories.

        For each category up to ``limit`` child rows are loaded and their
        parent references resolved with one batched lookup.

        Args:
            db: Database session
            filters: Categories and per-category row limit
            clock: Time source for detected_at / scanned_at

        Returns:
            OrphanDetectionResult

        Raises:
            OrphanFilterValidationException: If the filters are invalid
            StorageException: If a query fails
        """
        filters = filters or OrphanDetectionFilters()
        validation = validate_orphan_detection_filters(filters)
        if not validation.valid:
            raise OrphanFilterValidationException(validation.errors)

        types = (
            [OrphanType(t) for t in filters.types]
            if filters.types is not None
            else list(OrphanType)
        )
        limit = filters.limit or settings.ORPHAN_DETECTION_DEFAULT_LIMIT
        scanned_at = clock.now()
        repo = IntegrityRepository(db)

        orphans: list[OrphanRecord] = []
        try:
            for orphan_type in types:
                orphans.extend(
                    DataManagementService._detect_type(
                        repo, orphan_type, limit, scanned_at
                    )
                )
        except SQLAlchemyError as exc:
            logger.error(f"Orphan detection failed: {exc}")
            raise StorageException("Orphan detection failed") from exc

        result = create_orphan_detection_result(orphans, scanned_at)
        logger.info(
            f"Orphan scan found {result.summary.total_orphans} orphans "
            f"across {len(types)} categories"
        )
        return result

    @staticmethod
    def verify_orphan_status(
        db: Session, orphan_type: OrphanType, record_id: RecordId
    ) -> bool:
        """
        Re-check at call time that a row exists and its parent does not.

        Returns:
            False if the row is gone or its parent exists
        """
        relation = ORPHAN_TYPE_TABLE_MAP[OrphanType(orphan_type)]
        repo = IntegrityRepository(db)
        row = repo.get_row(relation.table, record_id)
        if row is None:
            return False
        reference = row[relation.reference_column]
        if reference is None:
            return not relation.optional
        parent_exists = bool(
            repo.find_existing_values(
                relation.reference_table, relation.parent_column, [reference]
            )
        )
        return not parent_exists

    @staticmethod
    def _write_backup(
        db: Session,
        relation: OrphanRelation,
        request: CleanupRequest,
        admin_id: str,
        admin_email: str,
        clock: Clock,
        id_generator: IdGenerator,
    ) -> str:
        backup_id = id_generator.new_id("backup")
        try:
            records = IntegrityRepository(db).get_rows_by_ids(
                relation.table, request.orphan_ids
            )
        except SQLAlchemyError as exc:
            logger.error(f"Backup read failed for {relation.table}: {exc}")
            raise StorageException("Failed to read records for backup") from exc

        AuditService.create_log(
            db,
            CreateAuditLogInput(
                action_type=AuditActionType.BULK_ACTION.value,
                admin_id=admin_id,
                admin_email=admin_email,
                target_type=AuditTargetType.SYSTEM.value,
                target_id=backup_id,
                reason=f"Backup before cleanup: {request.reason}",
                before_state={"records": records},
                after_state=None,
            ),
            clock,
            id_generator,
        )
        logger.info(f"Backed up {len(records)} rows of {relation.table} as {backup_id}")
        return backup_id

    @staticmethod
    def _delete_one(
        db: Session, orphan_type: OrphanType, record_id: RecordId
    ) -> Optional[str]:
        """Delete one orphan; returns an error message instead of raising."""
        relation = ORPHAN_TYPE_TABLE_MAP[orphan_type]
        repo = IntegrityRepository(db)
        try:
            row = repo.get_row(relation.table, record_id)
            if row is None:
                return "Record not found"
            if row[relation.reference_column] is None and relation.optional:
                return "Reference is null; record is not an orphan"
            if not DataManagementService.verify_orphan_status(
                db, orphan_type, record_id
            ):
                return "Parent record exists; record is no longer an orphan"
            if not repo.delete_row(relation.table, record_id):
                return "Record not found"
        except SQLAlchemyError as exc:
            repo.rollback()
            logger.warning(f"Failed to delete {relation.table}/{record_id}: {exc}")
            return f"Delete failed: {getattr(exc, 'orig', None) or type(exc).__name__}"
        return None

    @staticmethod
    def cleanup_orphans(
        db: Session,
        request: CleanupRequest,
        admin_id: str,
        admin_email: str,
        clock: Clock = system_clock,
        id_generator: IdGenerator = default_id_generator,
    ) -> CleanupResult:
        """
        Delete orphaned rows with an optional backup.

        Steps:
        1. Validate the request and admin identity (nothing is touched on failure)
        2. If requested, write every row to one backup audit entry
        3. Re-verify and delete each row on its own; failures are recorded
        4. Write a summary audit entry

        Args:
            db: Database session
            request: Orphan ids, type, reason and backup flag
            admin_id: Admin performing the cleanup
            admin_email: Admin's email
            clock: Time source for audit timestamps
            id_generator: Source of audit and backup ids

        Returns:
            CleanupResult with ``backup_id`` set when a backup was written

        Raises:
            CleanupValidationException: If the request is invalid
            StorageException: If the backup or summary cannot be written
        """
        validation = validate_cleanup_request(request)
        errors = validation.errors + _validate_admin(admin_id, admin_email)
        if errors:
            raise CleanupValidationException(errors)

        if isinstance(request, Mapping):
            request = CleanupRequest.model_validate(request)
        orphan_type = OrphanType(request.orphan_type)
        relation = ORPHAN_TYPE_TABLE_MAP[orphan_type]

        with operation_scope():
            logger.info(
                f"Cleanup of {len(request.orphan_ids)} {orphan_type.value} "
                f"requested by admin {admin_id}"
            )

            backup_id = None
            if request.create_backup:
                backup_id = DataManagementService._write_backup(
                    db, relation, request, admin_id, admin_email, clock, id_generator
                )

            deleted_ids: list[RecordId] = []
            failures: list[CleanupError] = []
            for record_id in request.orphan_ids:
                error = DataManagementService._delete_one(db, orphan_type, record_id)
                if error is None:
                    deleted_ids.append(record_id)
                else:
                    failures.append(CleanupError(id=record_id, error=error))

            after_state: dict[str, Any] = {
                "deleted": deleted_ids,
                "failed": [failure.id for failure in failures],
            }
            if backup_id:
                after_state["backup_id"] = backup_id

            AuditService.create_log(
                db,
                CreateAuditLogInput(
                    action_type=AuditActionType.BULK_ACTION.value,
                    admin_id=admin_id,
                    admin_email=admin_email,
                    target_type=AuditTargetType.SYSTEM.value,
                    target_id=f"cleanup_{orphan_type.value}",
                    reason=request.reason,
                    before_state={
                        "orphan_ids": list(request.orphan_ids),
                        "orphan_type": orphan_type.value,
                    },
                    after_state=after_state,
                ),
                clock,
                id_generator,
            )

            result = create_cleanup_result(
                len(request.orphan_ids), deleted_ids, failures, backup_id
            )
            logger.info(
                f"Cleanup of {orphan_type.value} finished: "
                f"{result.deleted} deleted, {result.failed} failed"
            )
        return result

    @staticmethod
    def cleanup_orphans_by_type(
        db: Session,
        orphan_type: OrphanType,
        reason: str,
        admin_id: str,
        admin_email: str,
        create_backup: bool = True,
        limit: Optional[int] = None,
        clock: Clock = system_clock,
        id_generator: IdGenerator = default_id_generator,
    ) -> CleanupResult:
        """
        Detect and clean every orphan of one category.

        The request is validated with a placeholder id list before the scan,
        so a bad reason or admin identity never reaches the database.
        """
        validation = validate_cleanup_request(
            {
                "orphan_ids": [None],
                "orphan_type": orphan_type,
                "reason": reason,
                "create_backup": create_backup,
            }
        )
        errors = validation.errors + _validate_admin(admin_id, admin_email)
        if errors:
            raise CleanupValidationException(errors)
        orphan_type = OrphanType(orphan_type)

        detection = DataManagementService.detect_orphans(
            db, OrphanDetectionFilters(types=[orphan_type.value], limit=limit), clock
        )
        orphan_ids = [orphan.id for orphan in detection.orphans]
        if not orphan_ids:
            logger.info(f"No {orphan_type.value} orphans to clean up")
            return create_cleanup_result(0, [], [])

        return DataManagementService.cleanup_orphans(
            db,
            CleanupRequest(
                orphan_ids=orphan_ids,
                orphan_type=orphan_type.value,
                reason=reason,
                create_backup=create_backup,
            ),
            admin_id,
            admin_email,
            clock,
            id_generator,
        )

    @staticmethod
    def get_orphan_summary(db: Session, clock: Clock = system_clock) -> OrphanSummary:
        """Counts per category from a scan at the maximum limit."""
        result = DataManagementService.detect_orphans(
            db,
            OrphanDetectionFilters(limit=settings.ORPHAN_DETECTION_MAX_LIMIT),
            clock,
        )
        return OrphanSummary(
            total_orphans=result.summary.total_orphans,
            by_type=result.summary.by_type,
            last_scan=result.scanned_at,
        )

    @staticmethod
    def get_storage_stats(db: Session, clock: Clock = system_clock) -> StorageStats:
        """Estimate storage per category from row counts."""
        repo = IntegrityRepository(db)
        now = clock.now()
        usage = []
        for category, table, bytes_per_row in STORAGE_ESTIMATES:
            count = repo.count_rows(table)
            usage.append(create_storage_usage(category, count * bytes_per_row, count, now))
        return create_storage_stats(usage)

    @staticmethod
    def get_cleanup_history(
        db: Session, limit: int = CLEANUP_HISTORY_LIMIT
    ) -> list[CleanupHistoryEntry]:
        """Past cleanups, newest first, read back from their summary audit entries."""
        history = []
        for log in AuditLogRepository(db).get_cleanup_summaries(limit):
            before = log.before_state or {}
            after = log.after_state or {}
            history.append(
                CleanupHistoryEntry(
                    id=log.id,
                    orphan_type=before.get("orphan_type", "unknown"),
                    records_deleted=len(after.get("deleted", [])),
                    performed_by=log.admin_email,
                    performed_at=parse_datetime(log.created_at),
                    reason=log.reason,
                    backup_id=after.get("backup_id"),
                )
            )
        return history
