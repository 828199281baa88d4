"""
Service for the admin audit log.

Audit entries are append-only. ``AuditService.create_log`` is the single
write path; everything else reads. The diff helpers compare before/after
snapshots of the record an action touched.
"""

import math
from collections.abc import Mapping
from enum import Enum
from typing import Any, Optional, Union

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.clock import Clock, system_clock
from core.correlation import operation_scope
from core.id_generator import IdGenerator, default_id_generator
from helpers.time_utils import ensure_utc, parse_datetime
from models.exceptions import (
    AuditLogNotFoundException,
    AuditLogValidationException,
    StorageException,
)
from models.moderation_types import AuditActionType, AuditTargetType
from models.schemas import (
    AuditDiff,
    AuditDiffEntry,
    AuditLogEntry,
    AuditLogFilters,
    AuditLogPage,
    CreateAuditLogInput,
    ValidationResult,
)
from repositories import db_models
from repositories.audit_log_repository import AuditLogRepository

VALID_ACTION_TYPES = frozenset(action.value for action in AuditActionType)
VALID_TARGET_TYPES = frozenset(target.value for target in AuditTargetType)


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _plain(data: Mapping[str, Any]) -> dict[str, Any]:
    """Replace enum members with their values."""
    return {
        key: value.value if isinstance(value, Enum) else value
        for key, value in data.items()
    }


def deep_equal(a: Any, b: Any) -> bool:
    """
    Structural equality for JSON-like values.

    Dicts compare by key set and values, lists element-wise. Booleans are
    never equal to numbers, and a container never equals a scalar.
    """
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        if a.keys() != b.keys():
            return False
        return all(deep_equal(a[key], b[key]) for key in a)
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        if len(a) != len(b):
            return False
        return all(deep_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, (Mapping, list, tuple)) or isinstance(b, (Mapping, list, tuple)):
        return False
    if a is None or b is None:
        return a is b
    return a == b


def compute_diff(
    before_state: Optional[Mapping[str, Any]],
    after_state: Optional[Mapping[str, Any]],
) -> AuditDiff:
    """
    Compute the field-level diff between two snapshots.

    ``None`` is treated as an empty snapshot. Entries follow the key order
    of ``before_state`` followed by keys only present in ``after_state``.

    Args:
        before_state: State before the action
        after_state: State after the action

    Returns:
        AuditDiff with one entry per added, removed or modified field
    """
    before = before_state or {}
    after = after_state or {}

    keys = list(before)
    keys.extend(key for key in after if key not in before)

    entries: list[AuditDiffEntry] = []
    for key in keys:
        in_before = key in before
        in_after = key in after
        if not in_before:
            entries.append(
                AuditDiffEntry(field=key, after=after[key], change_type="added")
            )
        elif not in_after:
            entries.append(
                AuditDiffEntry(field=key, before=before[key], change_type="removed")
            )
        elif not deep_equal(before[key], after[key]):
            entries.append(
                AuditDiffEntry(
                    field=key,
                    before=before[key],
                    after=after[key],
                    change_type="modified",
                )
            )

    return AuditDiff(entries=entries, has_changes=len(entries) > 0)


def validate_audit_log_input(
    data: Union[CreateAuditLogInput, Mapping[str, Any]],
) -> ValidationResult:
    """Check an audit log payload; collects every problem found."""
    if isinstance(data, CreateAuditLogInput):
        data = data.model_dump()
    data = _plain(data)
    errors: list[str] = []

    action_type = data.get("action_type")
    if not action_type:
        errors.append("action_type is required")
    elif action_type not in VALID_ACTION_TYPES:
        errors.append(f"Invalid action_type: {action_type}")

    admin_id = data.get("admin_id")
    if not admin_id:
        errors.append("admin_id is required")
    elif _is_blank(admin_id):
        errors.append("admin_id must be a non-empty string")

    admin_email = data.get("admin_email")
    if not admin_email:
        errors.append("admin_email is required")
    elif not isinstance(admin_email, str) or "@" not in admin_email:
        errors.append("admin_email must be a valid email address")

    target_type = data.get("target_type")
    if not target_type:
        errors.append("target_type is required")
    elif target_type not in VALID_TARGET_TYPES:
        errors.append(f"Invalid target_type: {target_type}")

    target_id = data.get("target_id")
    if not target_id:
        errors.append("target_id is required")
    elif _is_blank(target_id):
        errors.append("target_id must be a non-empty string")

    reason = data.get("reason")
    if not reason:
        errors.append("reason is required")
    elif _is_blank(reason):
        errors.append("reason must be a non-empty string")

    return ValidationResult.from_errors(errors)


def is_immutable_audit_log_entry(
    entry: Union[AuditLogEntry, Mapping[str, Any]],
) -> bool:
    """Check that an entry carries every field an immutable record needs."""
    if isinstance(entry, AuditLogEntry):
        entry = entry.model_dump(mode="json")
    entry = _plain(entry)

    for field in ("id", "admin_id", "admin_email", "target_id", "reason"):
        if _is_blank(entry.get(field)):
            return False
    if entry.get("action_type") not in VALID_ACTION_TYPES:
        return False
    if entry.get("target_type") not in VALID_TARGET_TYPES:
        return False
    return parse_datetime(entry.get("created_at")) is not None


def audit_log_entries_equal(a: AuditLogEntry, b: AuditLogEntry) -> bool:
    """Field-by-field comparison, with snapshots compared structurally."""
    scalar_fields = (
        "id",
        "action_type",
        "admin_id",
        "admin_email",
        "target_type",
        "target_id",
        "reason",
        "ip_address",
        "user_agent",
    )
    if any(getattr(a, field) != getattr(b, field) for field in scalar_fields):
        return False
    if ensure_utc(a.created_at) != ensure_utc(b.created_at):
        return False
    return deep_equal(a.before_state, b.before_state) and deep_equal(
        a.after_state, b.after_state
    )


def create_audit_log_entry(
    data: CreateAuditLogInput,
    clock: Clock = system_clock,
    id_generator: IdGenerator = default_id_generator,
) -> AuditLogEntry:
    """
    Build an audit entry from validated input without touching storage.

    Raises:
        AuditLogValidationException: If the input is invalid
    """
    validation = validate_audit_log_input(data)
    if not validation.valid:
        raise AuditLogValidationException(validation.errors)

    return AuditLogEntry(
        id=id_generator.new_id("audit"),
        action_type=AuditActionType(data.action_type),
        admin_id=data.admin_id,
        admin_email=data.admin_email,
        target_type=AuditTargetType(data.target_type),
        target_id=data.target_id,
        reason=data.reason.strip(),
        before_state=data.before_state,
        after_state=data.after_state,
        ip_address=data.ip_address,
        user_agent=data.user_agent,
        created_at=clock.now(),
    )


def _to_entry(record: db_models.AdminAuditLog) -> AuditLogEntry:
    return AuditLogEntry(
        id=record.id,
        action_type=AuditActionType(record.action_type),
        admin_id=record.admin_id,
        admin_email=record.admin_email,
        target_type=AuditTargetType(record.target_type),
        target_id=record.target_id,
        reason=record.reason,
        before_state=record.before_state,
        after_state=record.after_state,
        ip_address=record.ip_address,
        user_agent=record.user_agent,
        created_at=ensure_utc(record.created_at),
    )


class AuditService:
    """Service for writing and reading the admin audit log."""

    @staticmethod
    def create_log(
        db: Session,
        data: CreateAuditLogInput,
        clock: Clock = system_clock,
        id_generator: IdGenerator = default_id_generator,
    ) -> AuditLogEntry:
        """
        Validate and append an audit entry.

        Args:
            db: Database session
            data: Audit payload
            clock: Time source for created_at
            id_generator: Source of the entry id

        Returns:
            The stored entry

        Raises:
            AuditLogValidationException: If the input is invalid (nothing is written)
            StorageException: If the insert fails
        """
        entry = create_audit_log_entry(data, clock, id_generator)

        with operation_scope():
            repo = AuditLogRepository(db)
            try:
                repo.append(
                    db_models.AdminAuditLog(
                        id=entry.id,
                        action_type=entry.action_type.value,
                        admin_id=entry.admin_id,
                        admin_email=entry.admin_email,
                        target_type=entry.target_type.value,
                        target_id=entry.target_id,
                        reason=entry.reason,
                        before_state=entry.before_state,
                        after_state=entry.after_state,
                        ip_address=entry.ip_address,
                        user_agent=entry.user_agent,
                        created_at=entry.created_at,
                    )
                )
            except SQLAlchemyError as exc:
                repo.rollback()
                logger.error(f"Failed to write audit entry {entry.id}: {exc}")
                raise StorageException("Failed to write audit log entry") from exc

            logger.info(
                f"Audit: {entry.action_type.value} on "
                f"{entry.target_type.value}/{entry.target_id} by admin {entry.admin_id}"
            )
        return entry

    @staticmethod
    def get_logs(
        db: Session, filters: Optional[AuditLogFilters] = None
    ) -> AuditLogPage:
        """Get a page of audit entries, newest first."""
        filters = filters or AuditLogFilters()
        repo = AuditLogRepository(db)

        query_args: dict[str, Any] = {
            "admin_id": filters.admin_id,
            "action_types": [a.value for a in filters.action_type or []],
            "target_types": [t.value for t in filters.target_type or []],
            "target_id": filters.target_id,
            "start_date": filters.date_from,
            "end_date": filters.date_to,
        }
        total = repo.count_logs(**query_args)
        records = repo.get_logs(
            **query_args,
            limit=filters.limit,
            offset=(filters.page - 1) * filters.limit,
        )
        return AuditLogPage(
            logs=[_to_entry(record) for record in records],
            total=total,
            page=filters.page,
            total_pages=math.ceil(total / filters.limit),
        )

    @staticmethod
    def get_log(db: Session, log_id: str) -> AuditLogEntry:
        """
        Get a single audit entry.

        Raises:
            AuditLogNotFoundException: If no entry has this id
        """
        record = AuditLogRepository(db).get_by_id(log_id)
        if record is None:
            raise AuditLogNotFoundException(log_id)
        return _to_entry(record)

    @staticmethod
    def get_log_diff(db: Session, log_id: str) -> AuditDiff:
        """Diff the before/after snapshots of a stored entry."""
        entry = AuditService.get_log(db, log_id)
        return compute_diff(entry.before_state, entry.after_state)
