"""
Admin Audit Log Repository.

Audit entries are append-only: this repository exposes inserts and reads
and nothing that updates or deletes a row.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from repositories import db_models
from repositories.base import BaseRepository


class AuditLogRepository(BaseRepository[db_models.AdminAuditLog]):
    """Repository for admin audit log operations."""

    def __init__(self, db: Session):
        """Initialize repository."""
        super().__init__(db_models.AdminAuditLog, db)

    def _build_query(
        self,
        admin_id: Optional[str] = None,
        action_types: Optional[list[str]] = None,
        target_types: Optional[list[str]] = None,
        target_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ):
        """Build filtered query for audit logs."""
        query = self.db.query(self.model)

        if admin_id:
            query = query.filter(self.model.admin_id == admin_id)
        if action_types:
            query = query.filter(self.model.action_type.in_(action_types))
        if target_types:
            query = query.filter(self.model.target_type.in_(target_types))
        if target_id:
            query = query.filter(self.model.target_id == target_id)
        if start_date:
            query = query.filter(self.model.created_at >= start_date)
        if end_date:
            query = query.filter(self.model.created_at <= end_date)

        return query

    def get_logs(
        self,
        admin_id: Optional[str] = None,
        action_types: Optional[list[str]] = None,
        target_types: Optional[list[str]] = None,
        target_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[db_models.AdminAuditLog]:
        """
        Get audit logs with filters, newest first.

        Args:
            admin_id: Filter by acting admin
            action_types: Filter by any of these action types
            target_types: Filter by any of these target types
            target_id: Filter by target ID
            start_date: Filter by start date
            end_date: Filter by end date
            limit: Maximum records to return
            offset: Number of records to skip

        Returns:
            List of matching AdminAuditLog entries
        """
        query = self._build_query(
            admin_id=admin_id,
            action_types=action_types,
            target_types=target_types,
            target_id=target_id,
            start_date=start_date,
            end_date=end_date,
        )
        return (
            query.order_by(self.model.created_at.desc(), self.model.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def count_logs(
        self,
        admin_id: Optional[str] = None,
        action_types: Optional[list[str]] = None,
        target_types: Optional[list[str]] = None,
        target_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> int:
        """Count audit logs matching filters."""
        query = self._build_query(
            admin_id=admin_id,
            action_types=action_types,
            target_types=target_types,
            target_id=target_id,
            start_date=start_date,
            end_date=end_date,
        )
        return query.count() or 0

    def append(self, entry: db_models.AdminAuditLog) -> db_models.AdminAuditLog:
        """
        Insert an audit entry and commit.

        This is the only write path for audit logs.
        """
        return self.create(entry)

    def count_target_actions(
        self, target_id: str, action_types: list[str]
    ) -> int:
        """Count audit entries against a target with any of the given actions."""
        return (
            self.db.query(self.model)
            .filter(
                self.model.target_id == target_id,
                self.model.action_type.in_(action_types),
            )
            .count()
        )

    def get_cleanup_summaries(self, limit: int) -> list[db_models.AdminAuditLog]:
        """Get the summary entries written after orphan cleanups, newest first."""
        return (
            self.db.query(self.model)
            .filter(
                self.model.action_type == "bulk_action",
                self.model.target_id.like("cleanup_%"),
            )
            .order_by(self.model.created_at.desc())
            .limit(limit)
            .all()
        )
